from __future__ import annotations

from dataclasses import dataclass, field

from assignment_extract.domain.error_taxonomy import ErrorCode, RetryClassification
from assignment_extract.domain.models import AssignmentDefinition, DocumentType, TaskDefinition


@dataclass(frozen=True)
class ExtractionFailure:
    task_title: str | None
    document_id: str | None
    error_code: ErrorCode
    detail: str
    retry: RetryClassification = "terminal"


@dataclass(frozen=True)
class BuildDefinitionCommand:
    primary_title: str
    primary_topic: str
    document_type: DocumentType | str
    reference_document_id: str
    template_document_id: str
    year_group: int | None = None
    alternate_titles: tuple[str, ...] = ()
    alternate_topics: tuple[str, ...] = ()
    reference_last_modified: str | None = None
    template_last_modified: str | None = None
    assignment_weighting: float | None = None


@dataclass(frozen=True)
class TaskExtractionResult:
    tasks: list[TaskDefinition]
    failures: list[ExtractionFailure] = field(default_factory=list)


@dataclass(frozen=True)
class BuildDefinitionResult:
    definition: AssignmentDefinition
    failures: list[ExtractionFailure] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionExtractionResult:
    document_id: str
    appended: int
    failures: list[ExtractionFailure] = field(default_factory=list)


@dataclass(frozen=True)
class ImageCaptureResult:
    captured: int
    failures: list[ExtractionFailure] = field(default_factory=list)
