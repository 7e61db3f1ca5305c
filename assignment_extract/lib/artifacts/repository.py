from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal
from urllib.parse import quote, unquote

from assignment_extract.domain.contracts import DefinitionRepository, StorageClient
from assignment_extract.domain.errors import DefinitionNotFoundError
from assignment_extract.lib.artifacts.codecs import decode_definition, encode_definition
from assignment_extract.lib.artifacts.types import StoredDefinition

if TYPE_CHECKING:
    from assignment_extract.domain.models import AssignmentDefinition

CompatPolicy = Literal["strict", "compatible"]

DEFINITIONS_PREFIX = "definitions/"

SCHEMA_VERSION_BY_CONTRACT: dict[str, dict[str, str]] = {
    "v1": {
        "definition": "definition:v1",
    }
}


@dataclass(frozen=True)
class VersionedDefinitionRepository(DefinitionRepository):
    storage: StorageClient
    active_contract_version: str = "v1"
    compat_policy: CompatPolicy = "strict"

    def __post_init__(self) -> None:
        if self.active_contract_version not in SCHEMA_VERSION_BY_CONTRACT:
            raise ValueError(f"unsupported definition contract version: {self.active_contract_version}")
        if self.compat_policy not in ("strict", "compatible"):
            raise ValueError(f"unsupported definition compat policy: {self.compat_policy}")

    def save_definition(self, *, definition: AssignmentDefinition) -> str:
        stored = StoredDefinition(
            definition_key=definition.definition_key,
            definition=definition.to_json(),
            schema_version=SCHEMA_VERSION_BY_CONTRACT[self.active_contract_version]["definition"],
        )
        return self.storage.put_bytes(key=storage_key_for(definition.definition_key), payload=encode_definition(stored))

    def load_definition(self, *, definition_key: str) -> AssignmentDefinition:
        from assignment_extract.domain.models import AssignmentDefinition

        try:
            payload = self.storage.get_bytes(key=storage_key_for(definition_key))
        except KeyError as exc:
            raise DefinitionNotFoundError(f"assignment definition not found: {definition_key}") from exc
        stored = decode_definition(payload)
        self._validate_schema("definition", stored.schema_version)
        return AssignmentDefinition.from_json(stored.definition)

    def list_definition_keys(self) -> list[str]:
        keys = self.storage.list_keys(prefix=DEFINITIONS_PREFIX)
        return sorted(unquote(key.removeprefix(DEFINITIONS_PREFIX).removesuffix(".json")) for key in keys)

    def _validate_schema(self, kind: str, actual_schema_version: str) -> None:
        expected_schema_version = SCHEMA_VERSION_BY_CONTRACT[self.active_contract_version][kind]
        if actual_schema_version == expected_schema_version:
            return

        if self.compat_policy == "compatible":
            expected_family = expected_schema_version.split(":", maxsplit=1)[0]
            actual_family = actual_schema_version.split(":", maxsplit=1)[0]
            if expected_family == actual_family:
                return

        raise ValueError(
            f"definition schema mismatch for {kind}: expected {expected_schema_version}, got {actual_schema_version}"
        )


def storage_key_for(definition_key: str) -> str:
    return f"{DEFINITIONS_PREFIX}{quote(definition_key, safe='')}.json"
