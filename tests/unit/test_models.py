from datetime import datetime
import logging

import pytest

from assignment_extract.domain.errors import DomainValidationError
from assignment_extract.domain.models import (
    ArtifactRole,
    AssignmentDefinition,
    DocumentType,
    TaskDefinition,
    derive_task_id,
)
from assignment_extract.lib.artifacts.types import ArtifactType


def _assignment(**overrides: object) -> AssignmentDefinition:
    params: dict[str, object] = {
        "primary_title": "Cells",
        "primary_topic": "Spreadsheets",
        "year_group": 8,
        "document_type": "sheets",
        "reference_document_id": "ref",
        "template_document_id": "tpl",
    }
    params.update(overrides)
    return AssignmentDefinition(**params)


def _task_with_artifacts() -> TaskDefinition:
    task = TaskDefinition(task_title="Question 1", page_id="p1", index=0)
    task.add_reference_artifact({"type": "TEXT", "content": "The answer"})
    task.add_template_artifact({"type": "TEXT", "content": ""})
    task.add_submission_artifact({"type": "TEXT", "content": "Student answer", "document_id": "stu"})
    return task


@pytest.mark.unit
@pytest.mark.parametrize(
    ("field_name", "json_name"),
    [
        ("primary_title", "primaryTitle"),
        ("primary_topic", "primaryTopic"),
        ("document_type", "documentType"),
        ("reference_document_id", "referenceDocumentId"),
        ("template_document_id", "templateDocumentId"),
    ],
)
def test_missing_required_property_is_rejected(field_name: str, json_name: str) -> None:
    with pytest.raises(DomainValidationError, match=f"Missing required assignment property: {json_name}"):
        _assignment(**{field_name: ""})


@pytest.mark.unit
@pytest.mark.parametrize("year_group", ["8", 8.5, True])
def test_year_group_must_be_integer_or_null(year_group: object) -> None:
    with pytest.raises(DomainValidationError, match="yearGroup"):
        _assignment(year_group=year_group)


@pytest.mark.unit
def test_unknown_document_type_is_rejected() -> None:
    with pytest.raises(DomainValidationError, match="documentType"):
        _assignment(document_type="DOCS")


@pytest.mark.unit
def test_definition_key_uses_null_for_missing_year_group() -> None:
    assert _assignment().definition_key == "Cells_Spreadsheets_8"
    assert _assignment(year_group=None).definition_key == "Cells_Spreadsheets_null"
    assert _assignment().document_type is DocumentType.SHEETS


@pytest.mark.unit
def test_task_id_is_derived_from_title_and_page() -> None:
    task = TaskDefinition(task_title="Question 1", page_id="p1")

    assert task.id == derive_task_id("Question 1", "p1")
    assert task.id.startswith("t_")
    assert len(task.id) == 14
    assert TaskDefinition(task_title="Question 1", page_id="p2").id != task.id


@pytest.mark.unit
def test_task_requires_title() -> None:
    with pytest.raises(DomainValidationError, match="taskTitle"):
        TaskDefinition(task_title="")


@pytest.mark.unit
def test_artifacts_are_appended_per_role_without_dedup() -> None:
    task = TaskDefinition(task_title="Q", page_id="p1", index=3)

    first = task.add_submission_artifact({"type": "TEXT", "content": "same"})
    second = task.add_submission_artifact({"type": "TEXT", "content": "same"})

    assert task.artifacts[ArtifactRole.SUBMISSION] == [first, second]
    assert first.uid == f"{task.id}-3-submission-p1-0"
    assert second.uid == f"{task.id}-3-submission-p1-1"
    assert first.task_id == task.id
    assert first.page_id == "p1"


@pytest.mark.unit
def test_invalid_artifact_role_is_rejected() -> None:
    with pytest.raises(DomainValidationError, match="Invalid artifact role"):
        TaskDefinition(task_title="Q").create_artifact("grader", {"type": "TEXT"})


@pytest.mark.unit
def test_primary_artifacts_are_first_of_each_role() -> None:
    task = _task_with_artifacts()

    assert task.get_primary_reference().content == "The answer"
    assert task.get_primary_template().content is None
    assert TaskDefinition(task_title="Empty").get_primary_reference() is None


@pytest.mark.unit
def test_task_validation_reports_missing_roles() -> None:
    task = TaskDefinition(task_title="Q")
    task.add_reference_artifact({"type": ArtifactType.TEXT, "content": "x"})

    assert task.validate() == {"ok": False, "errors": ["TaskDefinition missing template artifact"]}
    assert _task_with_artifacts().validate() == {"ok": True, "errors": []}


@pytest.mark.unit
def test_notes_are_appended_on_new_lines() -> None:
    task = TaskDefinition(task_title="Q")

    task.append_notes("first")
    task.append_notes("second")

    assert task.task_notes == "first\nsecond"


@pytest.mark.unit
def test_assignment_json_round_trip_is_lossless() -> None:
    assignment = _assignment(alternate_titles=["Cells alt"], assignment_weighting=0.5)
    assignment.add_task(_task_with_artifacts())

    payload = assignment.to_json()
    restored = AssignmentDefinition.from_json(payload)

    assert restored.to_json() == payload
    assert isinstance(restored.tasks[assignment.ordered_tasks()[0].id], TaskDefinition)
    assert payload["documentType"] == "SHEETS"
    assert payload["yearGroup"] == 8


@pytest.mark.unit
def test_partial_json_nulls_every_artifact_content() -> None:
    assignment = _assignment()
    task = _task_with_artifacts()
    assignment.add_task(task)

    partial = assignment.to_partial_json()

    artifacts = partial["tasks"][task.id]["artifacts"]
    for role in ("reference", "template", "submission"):
        for artifact in artifacts[role]:
            assert artifact["content"] is None
            assert artifact["rawContent"] is None
            assert artifact["contentHash"] is None
    assert partial["tasks"][task.id]["taskTitle"] == "Question 1"
    assert assignment.to_json()["tasks"][task.id]["artifacts"]["reference"][0]["content"] == "The answer"


@pytest.mark.unit
def test_unhydratable_task_record_is_kept_raw_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    payload = _assignment().to_json()
    payload["tasks"] = {
        "t_bad": {"pageId": "p1", "artifacts": {"reference": [{"type": "TEXT", "rawContent": "leak"}]}},
    }

    with caplog.at_level(logging.WARNING, logger="extraction"):
        restored = AssignmentDefinition.from_json(payload)

    assert restored.tasks["t_bad"] == payload["tasks"]["t_bad"]
    assert restored.ordered_tasks() == []
    assert restored.to_partial_json()["tasks"]["t_bad"]["artifacts"]["reference"][0]["rawContent"] is None
    assert any(getattr(record, "error_code", None) == "hydration_failed" for record in caplog.records)


@pytest.mark.unit
def test_from_json_rejects_empty_payload() -> None:
    with pytest.raises(DomainValidationError):
        AssignmentDefinition.from_json({})


@pytest.mark.unit
def test_add_task_and_touch_move_updated_timestamp_forward() -> None:
    assignment = _assignment(created_at="2024-01-01T00:00:00+00:00")

    assert assignment.updated_at == assignment.created_at
    assignment.add_task(TaskDefinition(task_title="Q"))

    assert isinstance(assignment.updated_at, datetime)
    assert assignment.updated_at > assignment.created_at


@pytest.mark.unit
def test_update_modified_timestamps_only_overwrites_given_values() -> None:
    assignment = _assignment(reference_last_modified="r1", template_last_modified="t1")

    assignment.update_modified_timestamps(reference_last_modified="r2")

    assert assignment.reference_last_modified == "r2"
    assert assignment.template_last_modified == "t1"


@pytest.mark.unit
def test_ordered_tasks_follow_index() -> None:
    assignment = _assignment()
    assignment.add_task(TaskDefinition(task_title="B", index=1))
    assignment.add_task(TaskDefinition(task_title="A", index=0))

    assert [task.task_title for task in assignment.ordered_tasks()] == ["A", "B"]


@pytest.mark.unit
def test_artifacts_without_task_ids_hydrate_from_their_task() -> None:
    payload = _assignment().to_json()
    payload["tasks"] = {
        "task1": {
            "id": "task1",
            "taskTitle": "Question 1",
            "pageId": "p1",
            "index": 0,
            "artifacts": {
                "reference": [
                    {
                        "type": "TEXT",
                        "pageId": "p1",
                        "documentId": "ref",
                        "taskIndex": 0,
                        "content": "The answer",
                        "contentHash": None,
                        "metadata": {},
                    }
                ],
            },
        },
    }

    restored = AssignmentDefinition.from_json(payload)

    task = restored.tasks["task1"]
    assert isinstance(task, TaskDefinition)
    reference = task.get_primary_reference()
    assert reference.task_id == "task1"
    assert reference.uid == "task1-0-reference-p1-0"
    assert reference.content == "The answer"
    assert restored.ordered_tasks() == [task]


@pytest.mark.unit
@pytest.mark.parametrize("tasks", [["not", "a", "mapping"], "task1"])
def test_non_mapping_task_records_are_dropped_and_logged(
    tasks: object, caplog: pytest.LogCaptureFixture
) -> None:
    payload = {**_assignment().to_json(), "tasks": tasks}

    with caplog.at_level(logging.WARNING, logger="extraction"):
        restored = AssignmentDefinition.from_json(payload)

    assert restored.tasks == {}
    assert any(getattr(record, "error_code", None) == "hydration_failed" for record in caplog.records)
