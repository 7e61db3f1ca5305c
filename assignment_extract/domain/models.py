from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
import logging
from typing import Any

from assignment_extract.domain.error_taxonomy import resolve_stage_error
from assignment_extract.domain.errors import ArtifactHydrationError, DomainError, DomainValidationError
from assignment_extract.domain.formula_diff import BoundingBox
from assignment_extract.domain.hashing import generate_hash
from assignment_extract.lib.artifacts.factory import artifact_from_json, create_artifact
from assignment_extract.lib.artifacts.types import TaskArtifact

logger = logging.getLogger("extraction")


class DocumentType(StrEnum):
    SLIDES = "SLIDES"
    SHEETS = "SHEETS"


class ArtifactRole(StrEnum):
    REFERENCE = "reference"
    TEMPLATE = "template"
    SUBMISSION = "submission"


def _empty_artifacts() -> dict[ArtifactRole, list[TaskArtifact]]:
    return {role: [] for role in ArtifactRole}


@dataclass
class TaskDefinition:
    """One gradable unit with ordered artifact lists per role.

    ``id`` is derived from title and page when not supplied, so repeated
    extraction passes converge on the same task. ``index`` is assigned once by
    the extractor at first sight and fixes display order.
    """

    task_title: str
    page_id: str | None = None
    task_notes: str | None = None
    task_metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    index: int | None = None
    task_weighting: float | None = None
    artifacts: dict[ArtifactRole, list[TaskArtifact]] = field(default_factory=_empty_artifacts)

    def __post_init__(self) -> None:
        if not self.task_title:
            raise DomainValidationError("TaskDefinition requires taskTitle")
        self.task_metadata = self.task_metadata or {}
        if not self.id:
            self.id = derive_task_id(self.task_title, self.page_id)

    def create_artifact(self, role: ArtifactRole | str, params: Mapping[str, Any]) -> TaskArtifact:
        try:
            role = ArtifactRole(role)
        except ValueError as exc:
            raise DomainValidationError(f"Invalid artifact role for TaskDefinition: {role}") from exc

        page_id = params.get("page_id", params.get("pageId"))
        artifact = create_artifact(
            {
                **params,
                "role": role.value,
                "task_id": self.id,
                "page_id": page_id if page_id is not None else self.page_id,
                "metadata": params.get("metadata") or {},
                "task_index": self.index,
                "artifact_index": len(self.artifacts[role]),
            }
        )
        self.artifacts[role].append(artifact)
        return artifact

    def add_reference_artifact(self, params: Mapping[str, Any]) -> TaskArtifact:
        return self.create_artifact(ArtifactRole.REFERENCE, params)

    def add_template_artifact(self, params: Mapping[str, Any]) -> TaskArtifact:
        return self.create_artifact(ArtifactRole.TEMPLATE, params)

    def add_submission_artifact(self, params: Mapping[str, Any]) -> TaskArtifact:
        return self.create_artifact(ArtifactRole.SUBMISSION, params)

    def get_primary_reference(self) -> TaskArtifact | None:
        references = self.artifacts[ArtifactRole.REFERENCE]
        return references[0] if references else None

    def get_primary_template(self) -> TaskArtifact | None:
        templates = self.artifacts[ArtifactRole.TEMPLATE]
        return templates[0] if templates else None

    def append_notes(self, notes: str) -> None:
        self.task_notes = f"{self.task_notes}\n{notes}" if self.task_notes else notes

    def bounding_box(self) -> BoundingBox | None:
        payload = self.task_metadata.get("boundingBox")
        return BoundingBox.from_json(payload) if payload else None

    def validate(self) -> dict[str, object]:
        errors: list[str] = []
        if not self.artifacts[ArtifactRole.REFERENCE]:
            errors.append("TaskDefinition missing reference artifact")
        if not self.artifacts[ArtifactRole.TEMPLATE]:
            errors.append("TaskDefinition missing template artifact")
        return {"ok": not errors, "errors": errors}

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskTitle": self.task_title,
            "pageId": self.page_id,
            "taskNotes": self.task_notes,
            "taskMetadata": copy.deepcopy(self.task_metadata),
            "taskWeighting": self.task_weighting,
            "index": self.index,
            "artifacts": {
                role.value: [artifact.to_json() for artifact in items] for role, items in self.artifacts.items()
            },
        }

    def to_partial_json(self) -> dict[str, Any]:
        return {
            **self.to_json(),
            "artifacts": {
                role.value: [artifact.to_partial_json() for artifact in items] for role, items in self.artifacts.items()
            },
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> TaskDefinition:
        task = cls(
            task_title=payload.get("taskTitle"),
            page_id=payload.get("pageId"),
            task_notes=payload.get("taskNotes"),
            task_metadata=copy.deepcopy(payload.get("taskMetadata") or {}),
            id=payload.get("id"),
            index=payload.get("index"),
            task_weighting=payload.get("taskWeighting"),
        )
        stored_artifacts = payload.get("artifacts") or {}
        for role in ArtifactRole:
            for position, artifact_json in enumerate(stored_artifacts.get(role.value) or []):
                # Stored artifacts may omit the ids their task already carries.
                record = {"taskId": task.id, "taskIndex": task.index, "artifactIndex": position, **artifact_json}
                task.artifacts[role].append(artifact_from_json({**record, "role": role.value}))
        return task


def derive_task_id(task_title: str, page_id: str | None) -> str:
    return "t_" + generate_hash(f"{task_title or ''}::{page_id or ''}")[:12]


@dataclass
class AssignmentDefinition:
    """Aggregate of all tasks for one reference/template document pair.

    Required fields are validated at construction. Task records given as plain
    mappings are hydrated into ``TaskDefinition``; a record that cannot be
    hydrated is logged and kept as-is so one bad task does not block loading.
    """

    primary_title: str
    primary_topic: str
    document_type: DocumentType | str
    reference_document_id: str
    template_document_id: str
    year_group: int | None = None
    alternate_titles: list[str] = field(default_factory=list)
    alternate_topics: list[str] = field(default_factory=list)
    reference_last_modified: str | None = None
    template_last_modified: str | None = None
    assignment_weighting: float | None = None
    tasks: dict[str, TaskDefinition | dict[str, Any]] = field(default_factory=dict)
    definition_key: str | None = None
    created_at: datetime | str | None = None
    updated_at: datetime | str | None = None

    def __post_init__(self) -> None:
        for name, json_name in (
            ("primary_title", "primaryTitle"),
            ("primary_topic", "primaryTopic"),
            ("document_type", "documentType"),
            ("reference_document_id", "referenceDocumentId"),
            ("template_document_id", "templateDocumentId"),
        ):
            if not getattr(self, name):
                raise DomainValidationError(f"Missing required assignment property: {json_name}")

        if self.year_group is not None and (isinstance(self.year_group, bool) or not isinstance(self.year_group, int)):
            raise DomainValidationError("Invalid assignment property: yearGroup must be an integer or null")

        try:
            self.document_type = DocumentType(str(self.document_type).upper())
        except ValueError as exc:
            raise DomainValidationError(f"Invalid assignment property: documentType {self.document_type!r}") from exc

        self.alternate_titles = list(self.alternate_titles or [])
        self.alternate_topics = list(self.alternate_topics or [])
        self.created_at = _parse_timestamp(self.created_at) or datetime.now(UTC)
        self.updated_at = _parse_timestamp(self.updated_at) or self.created_at
        self.tasks = self._hydrate_tasks(self.tasks or {})
        if not self.definition_key:
            self.definition_key = self.build_definition_key(
                primary_title=self.primary_title,
                primary_topic=self.primary_topic,
                year_group=self.year_group,
            )

    @staticmethod
    def build_definition_key(*, primary_title: str, primary_topic: str, year_group: int | None) -> str:
        return f"{primary_title}_{primary_topic}_{'null' if year_group is None else year_group}"

    def touch_updated(self) -> datetime:
        self.updated_at = datetime.now(UTC)
        return self.updated_at

    def update_modified_timestamps(
        self,
        *,
        reference_last_modified: str | None = None,
        template_last_modified: str | None = None,
    ) -> None:
        if reference_last_modified is not None:
            self.reference_last_modified = reference_last_modified
        if template_last_modified is not None:
            self.template_last_modified = template_last_modified
        self.touch_updated()

    def add_task(self, task: TaskDefinition) -> None:
        self.tasks[task.id] = task
        self.touch_updated()

    def ordered_tasks(self) -> list[TaskDefinition]:
        hydrated = [task for task in self.tasks.values() if isinstance(task, TaskDefinition)]
        return sorted(hydrated, key=lambda task: (task.index is None, task.index or 0))

    def to_json(self) -> dict[str, Any]:
        return {
            **self._header_json(),
            "tasks": {
                task_id: task.to_json() if isinstance(task, TaskDefinition) else copy.deepcopy(task)
                for task_id, task in self.tasks.items()
            },
        }

    def to_partial_json(self) -> dict[str, Any]:
        return {
            **self._header_json(),
            "tasks": {
                task_id: task.to_partial_json() if isinstance(task, TaskDefinition) else _redact_task_record(task)
                for task_id, task in self.tasks.items()
            },
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any] | None) -> AssignmentDefinition:
        if not payload:
            raise DomainValidationError("Invalid data for AssignmentDefinition.from_json")
        return cls(
            primary_title=payload.get("primaryTitle"),
            primary_topic=payload.get("primaryTopic"),
            document_type=payload.get("documentType"),
            reference_document_id=payload.get("referenceDocumentId"),
            template_document_id=payload.get("templateDocumentId"),
            year_group=payload.get("yearGroup"),
            alternate_titles=payload.get("alternateTitles") or [],
            alternate_topics=payload.get("alternateTopics") or [],
            reference_last_modified=payload.get("referenceLastModified"),
            template_last_modified=payload.get("templateLastModified"),
            assignment_weighting=payload.get("assignmentWeighting"),
            tasks=payload.get("tasks") or {},
            definition_key=payload.get("definitionKey"),
            created_at=payload.get("createdAt"),
            updated_at=payload.get("updatedAt"),
        )

    def _header_json(self) -> dict[str, Any]:
        return {
            "primaryTitle": self.primary_title,
            "primaryTopic": self.primary_topic,
            "yearGroup": self.year_group,
            "alternateTitles": list(self.alternate_titles),
            "alternateTopics": list(self.alternate_topics),
            "documentType": str(self.document_type),
            "referenceDocumentId": self.reference_document_id,
            "templateDocumentId": self.template_document_id,
            "referenceLastModified": self.reference_last_modified,
            "templateLastModified": self.template_last_modified,
            "assignmentWeighting": self.assignment_weighting,
            "definitionKey": self.definition_key,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def _hydrate_tasks(self, tasks: Mapping[str, Any]) -> dict[str, TaskDefinition | dict[str, Any]]:
        hydrated: dict[str, TaskDefinition | dict[str, Any]] = {}
        if not isinstance(tasks, Mapping):
            logger.warning(
                "task records are not a mapping; dropping them",
                extra={
                    "error_code": resolve_stage_error(stage="hydration", code="hydration_failed"),
                    "detail": type(tasks).__name__,
                },
            )
            return hydrated
        for task_id, task in tasks.items():
            if isinstance(task, TaskDefinition):
                hydrated[task_id] = task
                continue
            try:
                if not isinstance(task, Mapping) or not task.get("taskTitle"):
                    raise ArtifactHydrationError("taskTitle is required to hydrate TaskDefinition")
                hydrated[task_id] = TaskDefinition.from_json(task)
            except (DomainError, ValueError, TypeError, KeyError, AttributeError) as exc:
                logger.warning(
                    "task hydration failed; keeping raw record",
                    extra={
                        "task_id": task_id,
                        "error_code": resolve_stage_error(stage="hydration", code="hydration_failed"),
                        "detail": str(exc),
                    },
                )
                hydrated[task_id] = task
        return hydrated


def _parse_timestamp(value: datetime | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _redact_task_record(record: Any) -> Any:
    # Unhydrated fallback records still must not leak artifact content.
    if not isinstance(record, Mapping):
        return copy.deepcopy(record)
    redacted = copy.deepcopy(dict(record))
    artifacts = redacted.get("artifacts")
    if isinstance(artifacts, dict):
        for items in artifacts.values():
            for artifact in items if isinstance(items, list) else []:
                if isinstance(artifact, dict):
                    artifact.update({"rawContent": None, "content": None, "contentHash": None})
    return redacted
