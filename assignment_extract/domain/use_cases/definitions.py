from __future__ import annotations

from assignment_extract.domain.contracts import DocumentSources, EventSink
from assignment_extract.domain.dto import BuildDefinitionCommand, BuildDefinitionResult, SubmissionExtractionResult
from assignment_extract.domain.errors import DomainInvariantError
from assignment_extract.domain.models import AssignmentDefinition, DocumentType
from assignment_extract.domain.use_cases.images import capture_images
from assignment_extract.domain.use_cases.sheets import (
    extract_sheet_submission_artifacts,
    extract_sheet_task_definitions,
)
from assignment_extract.domain.use_cases.slides import (
    extract_slide_submission_artifacts,
    extract_slide_task_definitions,
)


def build_assignment_definition(
    cmd: BuildDefinitionCommand,
    *,
    sources: DocumentSources,
    events: EventSink,
) -> BuildDefinitionResult:
    definition = AssignmentDefinition(
        primary_title=cmd.primary_title,
        primary_topic=cmd.primary_topic,
        document_type=cmd.document_type,
        reference_document_id=cmd.reference_document_id,
        template_document_id=cmd.template_document_id,
        year_group=cmd.year_group,
        alternate_titles=list(cmd.alternate_titles),
        alternate_topics=list(cmd.alternate_topics),
        reference_last_modified=cmd.reference_last_modified,
        template_last_modified=cmd.template_last_modified,
        assignment_weighting=cmd.assignment_weighting,
    )

    if definition.document_type is DocumentType.SHEETS:
        if sources.grids is None:
            raise DomainInvariantError("spreadsheet source is required for SHEETS definitions")
        extracted = extract_sheet_task_definitions(
            reference_document_id=definition.reference_document_id,
            template_document_id=definition.template_document_id,
            source=sources.grids,
            events=events,
        )
    else:
        if sources.slides is None:
            raise DomainInvariantError("slides source is required for SLIDES definitions")
        extracted = extract_slide_task_definitions(
            reference_document_id=definition.reference_document_id,
            template_document_id=definition.template_document_id,
            source=sources.slides,
            events=events,
        )

    for task in extracted.tasks:
        definition.add_task(task)

    failures = list(extracted.failures)
    if definition.document_type is DocumentType.SLIDES and sources.images is not None:
        failures.extend(capture_images(assignment=definition, image_source=sources.images, events=events).failures)

    events.log(
        "assignment definition built",
        document_id=definition.reference_document_id,
        count=len(definition.tasks),
    )
    return BuildDefinitionResult(definition=definition, failures=failures)


def attach_submissions(
    definition: AssignmentDefinition,
    *,
    student_document_id: str,
    sources: DocumentSources,
    events: EventSink,
) -> SubmissionExtractionResult:
    """Append one student's submission artifacts to every task of ``definition``."""
    if not student_document_id:
        raise DomainInvariantError("student document id is required")
    tasks = definition.ordered_tasks()

    if definition.document_type is DocumentType.SHEETS:
        if sources.grids is None:
            raise DomainInvariantError("spreadsheet source is required for SHEETS submissions")
        result = extract_sheet_submission_artifacts(
            student_document_id=student_document_id,
            tasks=tasks,
            source=sources.grids,
            events=events,
        )
    else:
        if sources.slides is None:
            raise DomainInvariantError("slides source is required for SLIDES submissions")
        result = extract_slide_submission_artifacts(
            student_document_id=student_document_id,
            tasks=tasks,
            source=sources.slides,
            events=events,
        )
        if sources.images is not None:
            images = capture_images(assignment=definition, image_source=sources.images, events=events)
            result = SubmissionExtractionResult(
                document_id=result.document_id,
                appended=result.appended,
                failures=[*result.failures, *images.failures],
            )

    if result.appended:
        definition.touch_updated()
    return result
