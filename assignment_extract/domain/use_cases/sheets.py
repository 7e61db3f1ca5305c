from __future__ import annotations

from collections.abc import Sequence

from assignment_extract.domain.contracts import EventSink, GridSource, PageRef
from assignment_extract.domain.dto import ExtractionFailure, SubmissionExtractionResult, TaskExtractionResult
from assignment_extract.domain.errors import SourceReadError
from assignment_extract.domain.formula_diff import (
    BoundingBox,
    FormulaDifference,
    bounding_box,
    build_reference_grid,
    build_template_grid,
    compare_grids,
    location_index,
    read_submission_region,
)
from assignment_extract.domain.models import TaskDefinition
from assignment_extract.domain.use_cases.failures import record_failure
from assignment_extract.lib.artifacts.types import ArtifactType

COMPONENT_ID_DEFINITIONS = "domain.sheets.extract_task_definitions"
COMPONENT_ID_SUBMISSIONS = "domain.sheets.extract_submission_artifacts"


def extract_sheet_task_definitions(
    *,
    reference_document_id: str,
    template_document_id: str,
    source: GridSource,
    events: EventSink,
) -> TaskExtractionResult:
    """Build one task per reference sheet that differs from its template sheet.

    Sheets are paired by name. A sheet without a template counterpart, or
    without any differences, produces no task. Read failures are recorded per
    sheet and do not stop the remaining sheets.
    """
    try:
        reference_pages = list(source.list_pages(reference_document_id))
        template_pages = {page.title: page for page in source.list_pages(template_document_id)}
    except SourceReadError as exc:
        failure = record_failure(
            events,
            exc,
            stage="definitions",
            message="failed to list sheets",
            task_title=None,
            document_id=reference_document_id,
        )
        return TaskExtractionResult(tasks=[], failures=[failure])

    tasks: list[TaskDefinition] = []
    failures: list[ExtractionFailure] = []
    for page in reference_pages:
        template_page = template_pages.get(page.title)
        if template_page is None:
            events.log("template sheet missing; skipping", task_title=page.title, document_id=template_document_id)
            continue
        try:
            reference_grid = source.extract_grid(reference_document_id, page.page_id)
            template_grid = source.extract_grid(template_document_id, template_page.page_id)
            if reference_grid is None or template_grid is None:
                continue
            differences = compare_grids(reference_grid, template_grid)
        except Exception as exc:
            failures.append(
                record_failure(
                    events,
                    exc,
                    stage="definitions",
                    message="failed to compare sheet formulae",
                    task_title=page.title,
                    document_id=reference_document_id,
                )
            )
            continue

        bbox = bounding_box(differences)
        if bbox is None:
            continue
        tasks.append(
            _build_sheet_task(
                page=page,
                differences=differences,
                bbox=bbox,
                index=len(tasks),
                reference_document_id=reference_document_id,
                template_document_id=template_document_id,
            )
        )

    events.log("sheet task definitions extracted", document_id=reference_document_id, count=len(tasks))
    return TaskExtractionResult(tasks=tasks, failures=failures)


def extract_sheet_submission_artifacts(
    *,
    student_document_id: str,
    tasks: Sequence[TaskDefinition],
    source: GridSource,
    events: EventSink,
) -> SubmissionExtractionResult:
    """Append a submission artifact per task, reading only each task's bounding box."""
    appended = 0
    failures: list[ExtractionFailure] = []
    for task in tasks:
        reference = task.get_primary_reference()
        bbox = task.bounding_box()
        if reference is None or bbox is None or task.page_id is None:
            continue
        try:
            grid = read_submission_region(source, student_document_id, task.page_id, bbox)
        except Exception as exc:
            failures.append(
                record_failure(
                    events,
                    exc,
                    stage="submissions",
                    message="failed to read submission region",
                    task_title=task.task_title,
                    document_id=student_document_id,
                    code="region_read_failed" if isinstance(exc, SourceReadError) else None,
                )
            )
            continue

        task.add_submission_artifact(
            {
                "type": reference.type,
                "page_id": task.page_id,
                "content": grid,
                "document_id": student_document_id,
                "metadata": {"sheetName": task.task_title, "boundingBox": bbox.to_json()},
            }
        )
        appended += 1

    events.log("sheet submission artifacts extracted", document_id=student_document_id, count=appended)
    return SubmissionExtractionResult(document_id=student_document_id, appended=appended, failures=failures)


def _build_sheet_task(
    *,
    page: PageRef,
    differences: list[FormulaDifference],
    bbox: BoundingBox,
    index: int,
    reference_document_id: str,
    template_document_id: str,
) -> TaskDefinition:
    task = TaskDefinition(
        task_title=page.title,
        page_id=page.page_id,
        task_metadata={
            "boundingBox": bbox.to_json(),
            "referenceLocations": location_index(differences),
            "sheetId": page.page_id,
        },
        index=index,
    )
    reference_grid = build_reference_grid(differences, bbox)
    task.add_reference_artifact(
        {
            "type": ArtifactType.SPREADSHEET,
            "content": reference_grid,
            "document_id": reference_document_id,
            "metadata": {"sheetName": page.title, "boundingBox": bbox.to_json()},
        }
    )
    # Same shape, nothing expected: used for not-attempted detection.
    task.add_template_artifact(
        {
            "type": ArtifactType.SPREADSHEET,
            "content": build_template_grid(reference_grid),
            "document_id": template_document_id,
            "metadata": {"sheetName": page.title, "boundingBox": bbox.to_json(), "template": True},
        }
    )
    return task
