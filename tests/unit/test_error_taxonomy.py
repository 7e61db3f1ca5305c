import pytest

from assignment_extract.clients.stub import RecordingEventSink
from assignment_extract.domain.error_taxonomy import (
    classify_error,
    is_canonical_error_code,
    resolve_stage_error,
)
from assignment_extract.domain.errors import SourceReadError
from assignment_extract.domain.use_cases.failures import record_failure


@pytest.mark.unit
def test_canonical_error_codes_are_enforced() -> None:
    assert is_canonical_error_code("region_read_failed") is True
    assert is_canonical_error_code("unknown_error") is False


@pytest.mark.unit
def test_stage_error_mapping_restricts_invalid_codes() -> None:
    assert resolve_stage_error(stage="submissions", code="region_read_failed") == "region_read_failed"
    assert resolve_stage_error(stage="definitions", code="region_read_failed") == "internal_error"
    assert resolve_stage_error(stage="unknown-stage", code="validation_error") == "internal_error"


@pytest.mark.unit
def test_retry_classification_distinguishes_terminal_and_recoverable() -> None:
    assert classify_error("source_unavailable") == "recoverable"
    assert classify_error("element_missing") == "terminal"
    assert classify_error("validation_error") == "terminal"


@pytest.mark.unit
def test_record_failure_reports_and_returns_resolved_code() -> None:
    events = RecordingEventSink()
    error = SourceReadError("sheet gone")

    failure = record_failure(
        events,
        error,
        stage="definitions",
        message="failed to compare sheet formulae",
        task_title="Sales",
        document_id="ref",
    )

    assert failure.error_code == "source_unavailable"
    assert failure.detail == "sheet gone"
    assert events.errors == [
        (
            error,
            {
                "message": "failed to compare sheet formulae",
                "task_title": "Sales",
                "document_id": "ref",
                "error_code": "source_unavailable",
            },
        )
    ]


@pytest.mark.unit
def test_unexpected_errors_are_internal() -> None:
    failure = record_failure(
        RecordingEventSink(),
        RuntimeError("boom"),
        stage="submissions",
        message="failed",
        task_title=None,
        document_id=None,
    )

    assert failure.error_code == "internal_error"


@pytest.mark.unit
def test_recorded_failures_carry_retry_classification() -> None:
    unavailable = record_failure(
        RecordingEventSink(),
        SourceReadError("sheet gone"),
        stage="submissions",
        message="failed",
        task_title="Sales",
        document_id="stu",
    )
    missing = record_failure(
        RecordingEventSink(),
        RuntimeError("no element"),
        stage="submissions",
        message="failed",
        task_title="Sales",
        document_id="stu",
        code="element_missing",
    )

    assert unavailable.retry == "recoverable"
    assert missing.retry == "terminal"
