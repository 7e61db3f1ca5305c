from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class RuntimeSettings:
    role: str = "api"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    document_source_file: str | None = None
    definition_contract_version: str = "v1"
    definition_compat_policy: str = "strict"


def runtime_settings_from_env() -> RuntimeSettings:
    return RuntimeSettings(
        role=os.getenv("APP_ROLE", "api"),
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=_env_int("APP_PORT", 8000),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        document_source_file=os.getenv("DOCUMENT_SOURCE_FILE") or None,
        definition_contract_version=os.getenv("DEFINITION_CONTRACT_VERSION", "v1"),
        definition_compat_policy=os.getenv("DEFINITION_COMPAT_POLICY", "strict"),
    )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default
