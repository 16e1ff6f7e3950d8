import logging
from dataclasses import dataclass
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils import column_index_from_string, get_column_letter

from regadmin.core.config import settings
from regadmin.core.errors import ConfigurationError, SheetNotFoundError

logger = logging.getLogger(__name__)


def column_range(start: str, end: str) -> list[str]:
    """Column letters from `start` to `end` inclusive, e.g. A..AC."""
    try:
        first = column_index_from_string(start.upper())
        last = column_index_from_string(end.upper())
    except ValueError as e:
        raise ConfigurationError(f"Invalid column letter: {e}") from e
    if last < first:
        raise ConfigurationError(f"End column {end} comes before start column {start}")
    return [get_column_letter(i) for i in range(first, last + 1)]


@dataclass
class SheetGrid:
    """A worksheet held in memory as a 2-D grid addressed by letter and 1-based row."""

    title: str
    rows: list[tuple]

    @classmethod
    def from_worksheet(cls, ws) -> "SheetGrid":
        return cls(title=ws.title, rows=[tuple(r) for r in ws.iter_rows(values_only=True)])

    @property
    def max_row(self) -> int:
        return len(self.rows)

    def cell(self, column: str, row: int):
        if row < 1 or row > len(self.rows):
            return None
        values = self.rows[row - 1]
        idx = column_index_from_string(column) - 1
        if idx >= len(values):
            return None
        return values[idx]

    def row_values(self, row: int, columns: list[str]) -> dict[str, object]:
        return {col: self.cell(col, row) for col in columns}


def resolve_import_path(path: str | Path, import_dir: Path | None = None) -> Path:
    """
    Existing or absolute paths are used as given; anything else is looked
    up under the configured import directory.
    """
    import_dir = Path(import_dir or settings.IMPORT_DIR)
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        resolved = candidate
    else:
        resolved = import_dir / candidate
    if not resolved.exists():
        raise ConfigurationError(f"File not found: {resolved}")
    return resolved


def resolve_sheet_name(available: list[str], wanted: str | None) -> str:
    """Trimmed, case-insensitive exact match against the workbook's sheet names."""
    if wanted is None:
        return available[0]
    target = wanted.strip().lower()
    for name in available:
        if name.strip().lower() == target:
            return name
    raise SheetNotFoundError(wanted, available)


def open_sheet(path: str | Path, sheet: str | None = None, import_dir: Path | None = None) -> SheetGrid:
    """Load one worksheet; `sheet=None` selects the active sheet."""
    resolved = resolve_import_path(path, import_dir)
    logger.info("Loading workbook %s", resolved)
    wb = load_workbook(resolved, data_only=True)
    try:
        if sheet is None:
            ws = wb.active
        else:
            ws = wb[resolve_sheet_name(wb.sheetnames, sheet)]
        return SheetGrid.from_worksheet(ws)
    finally:
        wb.close()
