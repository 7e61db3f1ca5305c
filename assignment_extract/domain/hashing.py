from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Sequence


def stable_stringify(value: object) -> str:
    """Serialize ``value`` deterministically: mapping keys sorted, sequence order kept."""
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda item: str(item[0]))
        members = (json.dumps(str(key), ensure_ascii=False) + ":" + stable_stringify(item) for key, item in items)
        return "{" + ",".join(members) + "}"
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return "[" + ",".join(stable_stringify(item) for item in value) + "]"
    return json.dumps(value, ensure_ascii=False)


def generate_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_hash(value: object) -> str:
    return generate_hash(stable_stringify(value))
