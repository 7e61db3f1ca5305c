from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from urllib.parse import quote

from assignment_extract.domain.contracts import EventSink, PageElement, SlideSource
from assignment_extract.domain.dto import ExtractionFailure, SubmissionExtractionResult, TaskExtractionResult
from assignment_extract.domain.errors import DomainInvariantError
from assignment_extract.domain.models import ArtifactRole, TaskDefinition
from assignment_extract.domain.use_cases.failures import record_failure
from assignment_extract.lib.artifacts.normalization import normalize_table
from assignment_extract.lib.artifacts.types import ArtifactType

COMPONENT_ID_DEFINITIONS = "domain.slides.extract_task_definitions"
COMPONENT_ID_SUBMISSIONS = "domain.slides.extract_submission_artifacts"

# Element description tags.
TITLE_TAG = "#"
NOTES_TAG = "^"
IMAGE_TAGS = ("~", "|")

ARTIFACT_TYPE_BY_KIND: dict[str, ArtifactType] = {
    "shape": ArtifactType.TEXT,
    "table": ArtifactType.TABLE,
}


def slide_image_url(document_id: str, page_id: str) -> str:
    if not document_id or not page_id:
        raise DomainInvariantError("slide image url requires document and page ids")
    document = quote(document_id, safe="")
    page = quote(page_id, safe="")
    return f"https://docs.google.com/presentation/d/{document}/export/png?id={document}&pageid={page}"


def extract_slide_task_definitions(
    *,
    reference_document_id: str,
    template_document_id: str | None,
    source: SlideSource,
    events: EventSink,
) -> TaskExtractionResult:
    """Build tasks from tagged slide elements of the reference and template decks.

    ``#Title`` elements carry task content (shape text or table cells),
    ``^`` elements carry notes for every task on their slide and ``~``/``|``
    elements attach a slide image. Tasks are keyed by title and slide and
    indexed in order of first sight.
    """
    tasks: dict[tuple[str, str], TaskDefinition] = {}
    notes_by_page: dict[str, list[str]] = defaultdict(list)
    failures: list[ExtractionFailure] = []

    passes = ((ArtifactRole.REFERENCE, reference_document_id), (ArtifactRole.TEMPLATE, template_document_id))
    for role, document_id in passes:
        if not document_id:
            continue
        try:
            elements = list(source.list_page_elements(document_id))
        except Exception as exc:
            failures.append(
                record_failure(
                    events,
                    exc,
                    stage="definitions",
                    message="failed to list slide elements",
                    task_title=None,
                    document_id=document_id,
                )
            )
            continue

        for element in elements:
            tag, tag_text = _split_tag(element.description)
            try:
                if tag == TITLE_TAG and tag_text:
                    task = _ensure_task(tasks, tag_text, element.page_id)
                    _add_element_artifact(task, role, element, document_id, source)
                elif tag == NOTES_TAG and role is ArtifactRole.REFERENCE:
                    notes = _element_text(element, document_id, source)
                    if notes:
                        notes_by_page[element.page_id].append(notes)
                elif tag in IMAGE_TAGS and tag_text:
                    task = _ensure_task(tasks, tag_text, element.page_id)
                    task.create_artifact(
                        role,
                        {
                            "type": ArtifactType.IMAGE,
                            "page_id": element.page_id,
                            "content": None,
                            "document_id": document_id,
                            "metadata": {"sourceUrl": slide_image_url(document_id, element.page_id)},
                        },
                    )
            except Exception as exc:
                failures.append(
                    record_failure(
                        events,
                        exc,
                        stage="definitions",
                        message="failed to extract slide element",
                        task_title=tag_text or None,
                        document_id=document_id,
                    )
                )

    for task in tasks.values():
        for notes in notes_by_page.get(task.page_id or "", []):
            task.append_notes(notes)

    events.log("slide task definitions extracted", document_id=reference_document_id, count=len(tasks))
    return TaskExtractionResult(tasks=list(tasks.values()), failures=failures)


def extract_slide_submission_artifacts(
    *,
    student_document_id: str,
    tasks: Sequence[TaskDefinition],
    source: SlideSource,
    events: EventSink,
) -> SubmissionExtractionResult:
    """Append one submission artifact per task, shaped by the task's primary artifact type.

    A task whose element cannot be found still gets an artifact with empty
    content so graders see it as not attempted.
    """
    try:
        elements = list(source.list_page_elements(student_document_id))
    except Exception as exc:
        failure = record_failure(
            events,
            exc,
            stage="submissions",
            message="failed to list slide elements",
            task_title=None,
            document_id=student_document_id,
        )
        return SubmissionExtractionResult(document_id=student_document_id, appended=0, failures=[failure])

    elements_by_page: dict[str, list[PageElement]] = defaultdict(list)
    for element in elements:
        elements_by_page[element.page_id].append(element)

    appended = 0
    failures: list[ExtractionFailure] = []
    for task in tasks:
        primary = task.get_primary_reference() or task.get_primary_template()
        if primary is None or task.page_id is None:
            continue
        params: dict[str, object] = {
            "type": primary.type,
            "page_id": task.page_id,
            "content": None,
            "document_id": student_document_id,
        }
        if primary.type is ArtifactType.IMAGE:
            params["metadata"] = {"sourceUrl": slide_image_url(student_document_id, task.page_id)}
        else:
            element = _find_task_element(task, primary.type, elements_by_page.get(task.page_id, []))
            try:
                if element is None:
                    raise DomainInvariantError(
                        f"no {primary.type} element tagged '{task.task_title}' on page {task.page_id}"
                    )
                params["content"] = _element_content(element, student_document_id, source)
            except Exception as exc:
                failures.append(
                    record_failure(
                        events,
                        exc,
                        stage="submissions",
                        message="failed to extract submission artifact",
                        task_title=task.task_title,
                        document_id=student_document_id,
                        code="element_missing" if element is None else None,
                    )
                )
                if element is not None:
                    continue
        task.add_submission_artifact(params)
        appended += 1

    events.log("slide submission artifacts extracted", document_id=student_document_id, count=appended)
    return SubmissionExtractionResult(document_id=student_document_id, appended=appended, failures=failures)


def _split_tag(description: str) -> tuple[str, str]:
    if not description:
        return "", ""
    return description[0], description[1:].strip()


def _ensure_task(tasks: dict[tuple[str, str], TaskDefinition], title: str, page_id: str) -> TaskDefinition:
    key = (title, page_id)
    task = tasks.get(key)
    if task is None:
        task = TaskDefinition(task_title=title, page_id=page_id, index=len(tasks))
        tasks[key] = task
    return task


def _add_element_artifact(
    task: TaskDefinition,
    role: ArtifactRole,
    element: PageElement,
    document_id: str,
    source: SlideSource,
) -> None:
    artifact_type = ARTIFACT_TYPE_BY_KIND.get(element.kind)
    if artifact_type is None:
        return
    task.create_artifact(
        role,
        {
            "type": artifact_type,
            "page_id": element.page_id,
            "content": _element_content(element, document_id, source),
            "document_id": document_id,
        },
    )


def _element_content(element: PageElement, document_id: str, source: SlideSource) -> object:
    if element.kind == "table":
        return source.extract_cells(document_id, element.page_id, element.element_id)
    return source.extract_text(document_id, element.page_id, element.element_id)


def _element_text(element: PageElement, document_id: str, source: SlideSource) -> str:
    if element.kind == "table":
        return normalize_table(source.extract_cells(document_id, element.page_id, element.element_id)) or ""
    if element.kind == "shape":
        return (source.extract_text(document_id, element.page_id, element.element_id) or "").strip()
    return ""


def _find_task_element(
    task: TaskDefinition,
    artifact_type: ArtifactType,
    elements: Sequence[PageElement],
) -> PageElement | None:
    for element in elements:
        tag, key = _split_tag(element.description)
        if tag not in (TITLE_TAG, *IMAGE_TAGS) or key != task.task_title:
            continue
        if ARTIFACT_TYPE_BY_KIND.get(element.kind) is artifact_type:
            return element
    return None
