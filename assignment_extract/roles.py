from __future__ import annotations

from dataclasses import dataclass

SUPPORTED_ROLES = (
    "api",
    "extract-definitions",
    "extract-submissions",
)


@dataclass(frozen=True)
class RuntimeRole:
    name: str

    @property
    def serves_http(self) -> bool:
        return self.name == "api"


def validate_role(role: str) -> RuntimeRole:
    if role in SUPPORTED_ROLES:
        return RuntimeRole(name=role)

    supported = ", ".join(SUPPORTED_ROLES)
    raise ValueError(
        f"Unsupported role '{role}'. Supported roles: {supported}. "
        "Note: extraction roles run once and exit."
    )
