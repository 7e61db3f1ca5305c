from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    role: str
    mode: str


class ExtractionFailureResponse(BaseModel):
    task_title: str | None = None
    document_id: str | None = None
    error_code: str
    detail: str
    retry: str = "terminal"


class ExtractDefinitionRequest(BaseModel):
    primary_title: str = Field(min_length=1, max_length=256)
    primary_topic: str = Field(min_length=1, max_length=256)
    document_type: Literal["SHEETS", "SLIDES", "sheets", "slides"]
    reference_document_id: str = Field(min_length=1)
    template_document_id: str = Field(min_length=1)
    year_group: int | None = None
    alternate_titles: list[str] = Field(default_factory=list)
    alternate_topics: list[str] = Field(default_factory=list)
    reference_last_modified: str | None = None
    template_last_modified: str | None = None
    assignment_weighting: float | None = None


class DefinitionResponse(BaseModel):
    definition_key: str
    definition: dict[str, Any]
    failures: list[ExtractionFailureResponse] = Field(default_factory=list)


class ListDefinitionsResponse(BaseModel):
    items: list[str]


class AttachSubmissionRequest(BaseModel):
    student_document_id: str = Field(min_length=1)


class AttachSubmissionResponse(BaseModel):
    definition_key: str
    document_id: str
    appended: int
    failures: list[ExtractionFailureResponse] = Field(default_factory=list)
