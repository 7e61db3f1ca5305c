from __future__ import annotations

import base64
from enum import StrEnum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from assignment_extract.domain.hashing import content_hash as compute_content_hash

logger = logging.getLogger("artifacts")

PNG_DATA_URL_PREFIX = "data:image/png;base64,"

# Fields that carry answer content. Redacted projections null all of them.
REDACTED_FIELDS: tuple[str, ...] = ("rawContent", "content", "contentHash")


class ArtifactType(StrEnum):
    TEXT = "TEXT"
    TABLE = "TABLE"
    SPREADSHEET = "SPREADSHEET"
    IMAGE = "IMAGE"
    # Fallback for unknown or missing type tags; content is kept verbatim.
    BASE = "BASE"


def resolve_artifact_type(tag: object) -> ArtifactType:
    if isinstance(tag, ArtifactType):
        return tag
    try:
        return ArtifactType(str(tag or "").strip().upper())
    except ValueError:
        return ArtifactType.BASE


class TaskArtifact(BaseModel):
    """One piece of extracted content for one task in one role.

    ``content`` is always the normalized form of ``raw_content`` for the
    artifact's type; ``None`` means the content is empty and must be read as
    "not attempted" by graders. Instances are built through
    ``assignment_extract.lib.artifacts.factory`` which applies normalization.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: ArtifactType = Field(frozen=True)
    task_id: str = Field(min_length=1)
    uid: str
    page_id: str | None = None
    document_id: str | None = None
    task_index: int | None = None
    raw_content: Any = None
    content: Any = None
    content_hash: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def ensure_hash(self) -> str | None:
        """Recompute ``content_hash`` from the current normalized content."""
        self.content_hash = compute_content_hash(self.content) if self.content is not None else None
        return self.content_hash

    def set_content(self, raw_content: object) -> None:
        from assignment_extract.lib.artifacts.normalization import normalize

        self.raw_content = raw_content
        self.content = normalize(self.type, raw_content)
        self.ensure_hash()

    def set_content_from_bytes(self, payload: object) -> None:
        """Store a binary image payload as a PNG data URL.

        Image capture is best effort: payloads that cannot be read or encoded
        leave the artifact without content.
        """
        if not payload:
            return
        try:
            data = _read_payload_bytes(payload)
            encoded = base64.b64encode(data).decode("ascii")
        except (TypeError, ValueError, OSError) as exc:
            logger.warning(
                "image payload conversion failed",
                extra={"page_id": self.page_id, "document_id": self.document_id, "detail": str(exc)},
            )
            return
        self.set_content(PNG_DATA_URL_PREFIX + encoded)

    def validate_content(self) -> dict[str, object]:
        if self.content is None or self.content == "" or (isinstance(self.content, list) and not self.content):
            return {"status": "empty", "errors": ["No content"]}
        return {"status": "ok"}

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_partial_json(self) -> dict[str, Any]:
        payload = self.to_json()
        for key in REDACTED_FIELDS:
            payload[key] = None
        return payload


class StoredDefinition(BaseModel):
    # Persistence envelope for assignment definitions.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    definition_key: str = Field(min_length=1)
    definition: dict[str, Any]
    schema_version: str = Field(default="definition:v1")


def _read_payload_bytes(payload: object) -> bytes:
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    get_bytes = getattr(payload, "get_bytes", None)
    if callable(get_bytes):
        return bytes(get_bytes())
    read = getattr(payload, "read", None)
    if callable(read):
        return bytes(read())
    raise TypeError(f"unsupported image payload type: {type(payload).__name__}")
