from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

# Canonical error vocabulary for extraction stages.
ErrorCode = Literal[
    "validation_error",
    "source_unavailable",
    "region_read_failed",
    "element_missing",
    "hydration_failed",
    "internal_error",
]

RetryClassification = Literal["recoverable", "terminal"]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "validation_error",
    "source_unavailable",
    "region_read_failed",
    "element_missing",
    "hydration_failed",
    "internal_error",
)

# A rerun of the same extraction may succeed for these.
RECOVERABLE_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {
        "source_unavailable",
        "region_read_failed",
        "internal_error",
    }
)

# Stage-specific allowlist. Codes outside the map collapse to internal_error.
STAGE_ERROR_MAP: Mapping[str, frozenset[ErrorCode]] = {
    "definitions": frozenset(
        {
            "source_unavailable",
            "element_missing",
            "validation_error",
            "internal_error",
        }
    ),
    "submissions": frozenset(
        {
            "source_unavailable",
            "region_read_failed",
            "element_missing",
            "internal_error",
        }
    ),
    "hydration": frozenset(
        {
            "hydration_failed",
            "validation_error",
            "internal_error",
        }
    ),
    "images": frozenset(
        {
            "source_unavailable",
            "internal_error",
        }
    ),
}


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def classify_error(code: ErrorCode) -> RetryClassification:
    if code in RECOVERABLE_ERROR_CODES:
        return "recoverable"
    return "terminal"


def resolve_stage_error(*, stage: str, code: str) -> ErrorCode:
    allowed = STAGE_ERROR_MAP.get(stage, frozenset({"internal_error"}))
    if code in allowed and is_canonical_error_code(code):
        return code
    return "internal_error"
