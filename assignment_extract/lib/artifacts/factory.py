from __future__ import annotations

from collections.abc import Mapping
import os
from typing import Any, cast

from assignment_extract.domain.contracts import DefinitionRepository, StorageClient
from assignment_extract.domain.hashing import content_hash
from assignment_extract.lib.artifacts.normalization import normalize
from assignment_extract.lib.artifacts.repository import CompatPolicy, VersionedDefinitionRepository
from assignment_extract.lib.artifacts.types import ArtifactType, TaskArtifact, resolve_artifact_type

DEFAULT_DEFINITION_CONTRACT_VERSION = "v1"
DEFAULT_DEFINITION_COMPAT_POLICY = "strict"

_MISSING = object()


def create_artifact(params: Mapping[str, Any]) -> TaskArtifact:
    """Build an artifact of the type named by ``params["type"]``.

    ``content`` (or ``rawContent`` when reading persisted JSON) is the raw
    value; it is normalized for the resolved type. Unknown or missing type
    tags produce a BASE artifact that keeps content verbatim. Both snake_case
    and camelCase keys are accepted.
    """
    data = dict(params)
    artifact_type = resolve_artifact_type(data.pop("type", None))
    role = data.pop("role", None)
    artifact_index = data.pop("artifact_index", data.pop("artifactIndex", 0))

    raw_content = _pop_either(data, "raw_content", "rawContent")
    stored_content = data.pop("content", None)
    if raw_content is _MISSING:
        raw_content = stored_content
    stored_hash = _pop_either(data, "content_hash", "contentHash")

    content = normalize(artifact_type, raw_content)
    if stored_hash is _MISSING or stored_hash is None:
        stored_hash = content_hash(content) if content is not None else None

    task_id = data.pop("task_id", data.pop("taskId", None))
    task_index = data.pop("task_index", data.pop("taskIndex", None))
    page_id = data.pop("page_id", data.pop("pageId", None))
    uid = data.pop("uid", None) or default_uid(
        task_id=task_id,
        task_index=task_index,
        role=role,
        page_id=page_id,
        artifact_index=artifact_index,
    )
    return TaskArtifact.model_validate(
        {
            **data,
            "type": artifact_type,
            "task_id": task_id,
            "task_index": task_index,
            "page_id": page_id,
            "uid": uid,
            "raw_content": raw_content,
            "content": content,
            "content_hash": stored_hash,
            "metadata": data.get("metadata") or {},
        }
    )


def artifact_from_json(payload: Mapping[str, Any]) -> TaskArtifact:
    return create_artifact(payload)


def text_artifact(params: Mapping[str, Any]) -> TaskArtifact:
    return create_artifact({**params, "type": ArtifactType.TEXT})


def table_artifact(params: Mapping[str, Any]) -> TaskArtifact:
    return create_artifact({**params, "type": ArtifactType.TABLE})


def spreadsheet_artifact(params: Mapping[str, Any]) -> TaskArtifact:
    return create_artifact({**params, "type": ArtifactType.SPREADSHEET})


def image_artifact(params: Mapping[str, Any]) -> TaskArtifact:
    return create_artifact({**params, "type": ArtifactType.IMAGE})


def default_uid(
    *,
    task_id: str | None,
    task_index: int | None,
    role: str | None,
    page_id: str | None,
    artifact_index: int,
) -> str:
    index_part = task_index if task_index is not None else 0
    return f"{task_id}-{index_part}-{role or 'na'}-{page_id or 'na'}-{artifact_index}"


def build_definition_repository(
    *,
    storage: StorageClient,
    active_contract_version: str | None = None,
    compat_policy: str | None = None,
) -> DefinitionRepository:
    version = active_contract_version or os.getenv(
        "DEFINITION_CONTRACT_VERSION", DEFAULT_DEFINITION_CONTRACT_VERSION
    )
    policy = compat_policy or os.getenv("DEFINITION_COMPAT_POLICY", DEFAULT_DEFINITION_COMPAT_POLICY)
    if policy not in ("strict", "compatible"):
        raise ValueError(f"unsupported definition compat policy: {policy}")

    return VersionedDefinitionRepository(
        storage=storage,
        active_contract_version=version,
        compat_policy=cast(CompatPolicy, policy),
    )


def _pop_either(data: dict[str, Any], snake: str, camel: str) -> object:
    if snake in data:
        data.pop(camel, None)
        return data.pop(snake)
    return data.pop(camel, _MISSING)
