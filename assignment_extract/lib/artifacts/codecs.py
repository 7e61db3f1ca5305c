from __future__ import annotations

import json

from assignment_extract.lib.artifacts.types import StoredDefinition


def encode_definition(stored: StoredDefinition) -> bytes:
    return json.dumps(stored.model_dump(mode="json", by_alias=True), sort_keys=True, ensure_ascii=False).encode(
        "utf-8"
    )


def decode_definition(payload: bytes) -> StoredDefinition:
    return StoredDefinition.model_validate_json(payload)
