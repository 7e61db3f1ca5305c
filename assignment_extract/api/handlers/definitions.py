from __future__ import annotations

from collections.abc import Sequence

from assignment_extract.api.handlers.deps import ApiDeps
from assignment_extract.api.schemas import (
    AttachSubmissionResponse,
    DefinitionResponse,
    ExtractDefinitionRequest,
    ExtractionFailureResponse,
    ListDefinitionsResponse,
)
from assignment_extract.domain.dto import BuildDefinitionCommand, ExtractionFailure
from assignment_extract.domain.use_cases.definitions import attach_submissions, build_assignment_definition

COMPONENT_ID_LIST = "api.list_definitions"
COMPONENT_ID_GET = "api.get_definition"
COMPONENT_ID_EXTRACT = "api.extract_definition"
COMPONENT_ID_SUBMISSIONS = "api.attach_submission"


async def list_definitions_handler(*, api_deps: ApiDeps) -> ListDefinitionsResponse:
    return ListDefinitionsResponse(items=api_deps.repository.list_definition_keys())


async def get_definition_handler(*, definition_key: str, api_deps: ApiDeps) -> DefinitionResponse:
    # Stored answers never leave the service through this endpoint.
    definition = api_deps.repository.load_definition(definition_key=definition_key)
    return DefinitionResponse(
        definition_key=definition.definition_key,
        definition=definition.to_partial_json(),
    )


async def extract_definition_handler(
    *,
    request: ExtractDefinitionRequest,
    api_deps: ApiDeps,
) -> DefinitionResponse:
    command = BuildDefinitionCommand(
        primary_title=request.primary_title,
        primary_topic=request.primary_topic,
        document_type=request.document_type,
        reference_document_id=request.reference_document_id,
        template_document_id=request.template_document_id,
        year_group=request.year_group,
        alternate_titles=tuple(request.alternate_titles),
        alternate_topics=tuple(request.alternate_topics),
        reference_last_modified=request.reference_last_modified,
        template_last_modified=request.template_last_modified,
        assignment_weighting=request.assignment_weighting,
    )
    result = build_assignment_definition(command, sources=api_deps.sources, events=api_deps.events)
    api_deps.repository.save_definition(definition=result.definition)
    return DefinitionResponse(
        definition_key=result.definition.definition_key,
        definition=result.definition.to_partial_json(),
        failures=_failure_responses(result.failures),
    )


async def attach_submission_handler(
    *,
    definition_key: str,
    student_document_id: str,
    api_deps: ApiDeps,
) -> AttachSubmissionResponse:
    definition = api_deps.repository.load_definition(definition_key=definition_key)
    result = attach_submissions(
        definition,
        student_document_id=student_document_id,
        sources=api_deps.sources,
        events=api_deps.events,
    )
    api_deps.repository.save_definition(definition=definition)
    return AttachSubmissionResponse(
        definition_key=definition.definition_key,
        document_id=result.document_id,
        appended=result.appended,
        failures=_failure_responses(result.failures),
    )


def _failure_responses(failures: Sequence[ExtractionFailure]) -> list[ExtractionFailureResponse]:
    return [
        ExtractionFailureResponse(
            task_title=failure.task_title,
            document_id=failure.document_id,
            error_code=failure.error_code,
            detail=failure.detail,
            retry=failure.retry,
        )
        for failure in failures
    ]
