from __future__ import annotations

from assignment_extract.domain.contracts import EventSink
from assignment_extract.domain.dto import ExtractionFailure
from assignment_extract.domain.error_taxonomy import classify_error, resolve_stage_error
from assignment_extract.domain.errors import SourceReadError


def record_failure(
    events: EventSink,
    error: BaseException,
    *,
    stage: str,
    message: str,
    task_title: str | None,
    document_id: str | None,
    code: str | None = None,
) -> ExtractionFailure:
    """Report a task-boundary failure to ``events`` and return its record."""
    if code is None:
        code = "source_unavailable" if isinstance(error, SourceReadError) else "internal_error"
    error_code = resolve_stage_error(stage=stage, code=code)
    events.capture_error(
        error,
        {
            "message": message,
            "task_title": task_title,
            "document_id": document_id,
            "error_code": error_code,
        },
    )
    return ExtractionFailure(
        task_title=task_title,
        document_id=document_id,
        error_code=error_code,
        detail=str(error),
        retry=classify_error(error_code),
    )
