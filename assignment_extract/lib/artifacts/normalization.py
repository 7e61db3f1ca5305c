from __future__ import annotations

from collections.abc import Callable, Sequence
import re

from assignment_extract.lib.artifacts.types import ArtifactType, resolve_artifact_type

Cell = str | int | float | None
Grid = list[list[Cell]]


def normalize(artifact_type: ArtifactType | str | None, raw_content: object) -> object:
    """Apply the normalization rule for ``artifact_type`` to ``raw_content``.

    Pure and repeatable; returns ``None`` for empty or malformed content.
    """
    return NORMALIZERS[resolve_artifact_type(artifact_type)](raw_content)


def normalize_text(content: object) -> str | None:
    if content is None:
        return None
    normalized = re.sub(r"\r\n?", "\n", str(content)).strip()
    return normalized or None


def normalize_table(content: object) -> str | None:
    if content is None:
        return None
    if isinstance(content, str):
        return content.strip() or None
    if not _is_row_sequence(content):
        return None
    rows = trim_grid(_normalize_cells(content))
    if not rows:
        return None
    return render_markdown_table(rows) or None


def normalize_spreadsheet(content: object) -> Grid | None:
    # Spreadsheet content must be grid shaped; strings are rejected outright.
    if content is None or isinstance(content, str) or not _is_row_sequence(content):
        return None
    rows = trim_grid(_normalize_cells(content))
    if not rows:
        return None
    return [
        [canonicalise_formula(cell) if isinstance(cell, str) and cell.startswith("=") else cell for cell in row]
        for row in rows
    ]


def normalize_image(content: object) -> str | None:
    if not isinstance(content, str):
        return None
    return content.strip() or None


def normalize_verbatim(content: object) -> object:
    return content


NORMALIZERS: dict[ArtifactType, Callable[[object], object]] = {
    ArtifactType.TEXT: normalize_text,
    ArtifactType.TABLE: normalize_table,
    ArtifactType.SPREADSHEET: normalize_spreadsheet,
    ArtifactType.IMAGE: normalize_image,
    ArtifactType.BASE: normalize_verbatim,
}


def normalize_cell(cell: object) -> Cell:
    if cell is None:
        return None
    if isinstance(cell, (int, float)) and not isinstance(cell, bool):
        return cell
    return str(cell).strip() or None


def is_empty_cell(cell: object) -> bool:
    return cell is None or cell == ""


def is_empty_row(row: Sequence[object]) -> bool:
    return all(is_empty_cell(cell) for cell in row)


def trim_grid(rows: Sequence[Sequence[Cell]]) -> Grid:
    """Return the smallest grid with content in every border row and column.

    Trailing empty rows are dropped first; then every column that is empty in
    all remaining rows is removed, highest index first. The input is not
    mutated.
    """
    trimmed = [list(row) for row in rows]
    while trimmed and is_empty_row(trimmed[-1]):
        trimmed.pop()
    if not trimmed:
        return []

    width = max(len(row) for row in trimmed)
    for column in range(width - 1, -1, -1):
        if all(column >= len(row) or is_empty_cell(row[column]) for row in trimmed):
            for row in trimmed:
                if column < len(row):
                    del row[column]
    return trimmed


def canonicalise_formula(formula: str) -> str:
    """Upper-case a formula outside quoted string literals.

    ``=sum(A1,"text")`` becomes ``=SUM(A1,"text")``. Doubled quotes inside a
    literal toggle twice and so leave the literal untouched.
    """
    result: list[str] = []
    in_quote = False
    for char in formula:
        if char == '"':
            in_quote = not in_quote
            result.append(char)
            continue
        result.append(char if in_quote else char.upper())
    return "".join(result)


def render_markdown_table(rows: Sequence[Sequence[Cell]]) -> str:
    """Render rows as a Markdown table; the first row is the header.

    Backslashes and pipes are escaped in every cell and short rows are padded
    to the table width.
    """
    width = max((len(row) for row in rows), default=0)
    if width == 0:
        return ""

    def _line(row: Sequence[Cell]) -> str:
        cells = [_markdown_cell(cell) for cell in row] + [""] * (width - len(row))
        return "| " + " | ".join(cells) + " |"

    lines = [_line(rows[0]), "| " + " | ".join("---" for _ in range(width)) + " |"]
    lines.extend(_line(row) for row in rows[1:])
    return "\n".join(lines)


def _markdown_cell(cell: Cell) -> str:
    if cell is None:
        return ""
    return str(cell).replace("\\", "\\\\").replace("|", "\\|")


def _is_row_sequence(content: object) -> bool:
    return isinstance(content, (list, tuple))


def _normalize_cells(content: Sequence[object]) -> Grid:
    return [[normalize_cell(cell) for cell in row] if _is_row_sequence(row) else [] for row in content]
