from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assignment_extract.domain.contracts import GridSource

# Raw grids as read from a spreadsheet: formula text, rows may be ragged.
RawGrid = Sequence[Sequence[object]]
SparseGrid = list[list[str | None]]


@dataclass(frozen=True)
class FormulaDifference:
    """A reference cell that differs from the template. Zero-based, sheet-absolute."""

    row: int
    column: int
    normalized_reference_formula: str


@dataclass(frozen=True)
class BoundingBox:
    """Smallest rectangle covering a set of differences. One-based, inclusive."""

    start_row: int
    start_column: int
    end_row: int
    end_column: int
    num_rows: int
    num_columns: int

    def contains(self, row: int, column: int) -> bool:
        # Zero-based coordinates against the one-based box.
        return self.start_row - 1 <= row <= self.end_row - 1 and self.start_column - 1 <= column <= self.end_column - 1

    def to_json(self) -> dict[str, int]:
        return {
            "startRow": self.start_row,
            "startColumn": self.start_column,
            "endRow": self.end_row,
            "endColumn": self.end_column,
            "numRows": self.num_rows,
            "numColumns": self.num_columns,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, object]) -> BoundingBox:
        return cls(
            start_row=int(payload["startRow"]),
            start_column=int(payload["startColumn"]),
            end_row=int(payload["endRow"]),
            end_column=int(payload["endColumn"]),
            num_rows=int(payload["numRows"]),
            num_columns=int(payload["numColumns"]),
        )


def compare_grids(reference: RawGrid, template: RawGrid) -> list[FormulaDifference]:
    """Return every non-empty reference cell whose raw text differs from the template.

    Only the reference extent is walked. Template cells outside its bounds, and
    cells beyond the end of a short row, compare as empty strings.
    """
    differences: list[FormulaDifference] = []
    for row_index, reference_row in enumerate(reference):
        reference_row = reference_row or []
        template_row = template[row_index] if row_index < len(template) else []
        template_row = template_row or []
        for column_index, reference_cell in enumerate(reference_row):
            reference_formula = _cell_text(reference_cell)
            template_formula = _cell_text(template_row[column_index]) if column_index < len(template_row) else ""
            if reference_formula and reference_formula != template_formula:
                differences.append(
                    FormulaDifference(
                        row=row_index,
                        column=column_index,
                        normalized_reference_formula=normalise_reference_formula(reference_formula),
                    )
                )
    return differences


def normalise_reference_formula(formula: str) -> str:
    """Case-fold a reference formula outside string literals and drop unquoted spaces.

    Some extraction APIs return formulas wrapped in double quotes with inner
    quotes doubled; that wrapper is removed first.
    """
    if not formula:
        return formula

    if len(formula) >= 2 and formula.startswith('"') and formula.endswith('"'):
        formula = formula[1:-1].replace('""', '"')

    result: list[str] = []
    in_quotes = False
    index = 0
    while index < len(formula):
        char = formula[index]
        if char == '"':
            if in_quotes and index + 1 < len(formula) and formula[index + 1] == '"':
                result.append('""')
                index += 2
                continue
            in_quotes = not in_quotes
            result.append(char)
        elif in_quotes:
            result.append(char)
        elif char != " ":
            result.append(char.upper())
        index += 1
    return "".join(result)


def bounding_box(differences: Sequence[FormulaDifference]) -> BoundingBox | None:
    if not differences:
        return None

    start_row = min(diff.row for diff in differences)
    start_column = min(diff.column for diff in differences)
    end_row = max(diff.row for diff in differences)
    end_column = max(diff.column for diff in differences)
    return BoundingBox(
        start_row=start_row + 1,
        start_column=start_column + 1,
        end_row=end_row + 1,
        end_column=end_column + 1,
        num_rows=end_row - start_row + 1,
        num_columns=end_column - start_column + 1,
    )


def location_index(differences: Sequence[FormulaDifference]) -> dict[str, int]:
    """Map ``"row,col"`` to the position of the difference in ``differences``."""
    return {f"{diff.row},{diff.column}": index for index, diff in enumerate(differences)}


def build_reference_grid(differences: Sequence[FormulaDifference], bbox: BoundingBox) -> SparseGrid:
    """Place each normalized formula in a box-sized grid, box-relative coordinates."""
    grid: SparseGrid = [[None] * bbox.num_columns for _ in range(bbox.num_rows)]
    for diff in differences:
        relative_row = diff.row - (bbox.start_row - 1)
        relative_column = diff.column - (bbox.start_column - 1)
        if 0 <= relative_row < bbox.num_rows and 0 <= relative_column < bbox.num_columns:
            grid[relative_row][relative_column] = diff.normalized_reference_formula
    return grid


def build_template_grid(reference_grid: SparseGrid) -> SparseGrid:
    return [[None for _ in row] for row in reference_grid]


def build_submission_grid(region: RawGrid, bbox: BoundingBox) -> SparseGrid:
    """Project a region read back from a student sheet onto a box-sized grid.

    Only non-empty values are kept, so the result has the same shape as the
    reference grid for the same box.
    """
    grid: SparseGrid = [[None] * bbox.num_columns for _ in range(bbox.num_rows)]
    for row_index in range(bbox.num_rows):
        region_row = region[row_index] if row_index < len(region) else []
        region_row = region_row or []
        for column_index in range(bbox.num_columns):
            value = _cell_text(region_row[column_index]) if column_index < len(region_row) else ""
            if value:
                grid[row_index][column_index] = value
    return grid


def read_submission_region(source: GridSource, document_id: str, page_id: str, bbox: BoundingBox) -> SparseGrid:
    # Reads only the box, never the whole sheet.
    return build_submission_grid(source.read_region(document_id, page_id, bbox), bbox)


def _cell_text(cell: object) -> str:
    if cell is None:
        return ""
    return cell if isinstance(cell, str) else str(cell)
