"""
Read-only comparisons between a spreadsheet and the registrant table.

Nothing here writes to the store; every function returns a report value
that the CLI renders.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.importing.headers import build_column_index, map_columns
from regadmin.importing.rows import NA, cell_text, is_named, name_key, to_bool
from regadmin.importing.workbook import SheetGrid, column_range
from regadmin.models.event import Event
from regadmin.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetEntry:
    row: int
    first_name: str
    last_name: str
    attendance: bool = False
    raw_attendance: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def key(self) -> str:
        return name_key(self.first_name, self.last_name)

    @property
    def has_name(self) -> bool:
        return is_named(self.first_name, self.last_name)

    @property
    def name_issue(self) -> str:
        first = self.first_name not in ("", NA)
        last = self.last_name not in ("", NA)
        if not first and not last:
            return "Both names missing"
        if not first:
            return "First name missing"
        if not last:
            return "Last name missing"
        return ""


def _is_placeholder(first: str, last: str) -> bool:
    return first.upper() == NA and last.upper() == NA


def read_entries(
    grid: SheetGrid,
    *,
    start_row: int,
    first_name_col: str,
    last_name_col: str,
    attendance_col: str | None = None,
) -> list[SheetEntry]:
    """Every row in range with at least one non-blank name or attendance cell."""
    entries = []
    for row in range(start_row, grid.max_row + 1):
        first = cell_text(grid.cell(first_name_col, row))
        last = cell_text(grid.cell(last_name_col, row))
        raw = cell_text(grid.cell(attendance_col, row)) if attendance_col else ""
        if not first and not last and not raw:
            continue
        if first.upper() == NA:
            first = NA
        if last.upper() == NA:
            last = NA
        entries.append(SheetEntry(row=row, first_name=first, last_name=last, attendance=to_bool(raw), raw_attendance=raw))
    return entries


# ---------------------------------------------------------------------------
# Missing registrants
# ---------------------------------------------------------------------------


@dataclass
class MissingUsersReport:
    sheet: str
    found: list[SheetEntry] = field(default_factory=list)
    missing: list[SheetEntry] = field(default_factory=list)
    skipped: int = 0

    @property
    def processed(self) -> int:
        return len(self.found) + len(self.missing)


def registrant_exists(db: Session, first_name: str, last_name: str) -> bool:
    return (
        db.query(User.id)
        .filter(
            User.deleted_at.is_(None),
            func.lower(func.trim(User.first_name)) == first_name.strip().lower(),
            func.lower(func.trim(User.last_name)) == last_name.strip().lower(),
        )
        .first()
        is not None
    )


def find_missing_users(
    db: Session,
    grid: SheetGrid,
    *,
    start_row: int = 2,
    last_name_col: str = "A",
    first_name_col: str = "B",
) -> MissingUsersReport:
    report = MissingUsersReport(sheet=grid.title)
    for row in range(start_row, grid.max_row + 1):
        first = cell_text(grid.cell(first_name_col, row))
        last = cell_text(grid.cell(last_name_col, row))
        if (not first and not last) or _is_placeholder(first, last):
            report.skipped += 1
            continue
        entry = SheetEntry(row=row, first_name=first, last_name=last)
        if registrant_exists(db, first, last):
            report.found.append(entry)
        else:
            report.missing.append(entry)
    logger.info("Missing-user scan: %d found, %d missing", len(report.found), len(report.missing))
    return report


# ---------------------------------------------------------------------------
# Attendance arithmetic
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DuplicateName:
    key: str
    first_name: str
    last_name: str
    rows: tuple[int, ...]
    attendance_values: tuple[int, ...]

    @property
    def times(self) -> int:
        return len(self.rows)


@dataclass
class AttendanceTally:
    """
    N rows marked present, E of them missing a name, D repeating an earlier
    named row. valid = N - D - E is the number of distinct people present.
    """

    attending: list[SheetEntry] = field(default_factory=list)
    missing_names: list[SheetEntry] = field(default_factory=list)
    duplicates: list[tuple[SheetEntry, int]] = field(default_factory=list)  # (repeat, first row)

    @property
    def count(self) -> int:
        return len(self.attending)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def missing_name_count(self) -> int:
        return len(self.missing_names)

    @property
    def valid_count(self) -> int:
        return self.count - self.duplicate_count - self.missing_name_count


def tally_attendance(entries: list[SheetEntry]) -> AttendanceTally:
    tally = AttendanceTally()
    first_seen: dict[str, int] = {}
    for entry in entries:
        if not entry.attendance:
            continue
        tally.attending.append(entry)
        if not entry.has_name:
            tally.missing_names.append(entry)
            continue
        if entry.key in first_seen:
            tally.duplicates.append((entry, first_seen[entry.key]))
        else:
            first_seen[entry.key] = entry.row
    return tally


def find_duplicate_names(entries: list[SheetEntry]) -> list[DuplicateName]:
    """Every named key used by more than one row, in first-appearance order."""
    groups: dict[str, list[SheetEntry]] = {}
    for entry in entries:
        if entry.has_name:
            groups.setdefault(entry.key, []).append(entry)
    return [
        DuplicateName(
            key=key,
            first_name=rows[0].first_name,
            last_name=rows[0].last_name,
            rows=tuple(e.row for e in rows),
            attendance_values=tuple(int(e.attendance) for e in rows),
        )
        for key, rows in groups.items()
        if len(rows) > 1
    ]


@dataclass
class AttendanceAnalysis:
    sheet: str
    header_row: int
    attendance_col: str
    attendance_detected: bool
    total_rows: int
    entries: list[SheetEntry]
    tally: AttendanceTally
    empty_attendance: int
    other_attendance: int
    empty_name_rows: list[SheetEntry]
    expected_count: int | None = None

    @property
    def not_attending(self) -> list[SheetEntry]:
        """Named rows not marked present."""
        return [e for e in self.entries if not e.attendance and e.full_name]

    @property
    def expected_gap(self) -> int | None:
        if self.expected_count is None:
            return None
        return self.tally.count - self.expected_count


def analyze_attendance(
    grid: SheetGrid,
    *,
    header_row: int = 2,
    start_col: str = "A",
    end_col: str = "Z",
    attendance_col: str = "F",
    first_name_col: str | None = None,
    last_name_col: str | None = None,
    expected_count: int | None = None,
) -> AttendanceAnalysis:
    """Spreadsheet-only breakdown of the attendance column."""
    headers = build_column_index(grid.row_values(header_row, column_range(start_col, end_col)))
    mapping = map_columns(headers)

    detected = mapping.column_for("attendance")
    column = detected or attendance_col.upper()
    if not detected:
        logger.warning("'Attendance' header not found, using column %s", column)

    fallback = [h.column for h in headers] + ["A", "B"]
    first_col = first_name_col or mapping.column_for("first_name") or fallback[0]
    last_col = last_name_col or mapping.column_for("last_name") or fallback[1]

    entries = read_entries(
        grid,
        start_row=header_row + 1,
        first_name_col=first_col,
        last_name_col=last_col,
        attendance_col=column,
    )
    empty_attendance = sum(1 for e in entries if not e.raw_attendance)
    other_attendance = sum(1 for e in entries if e.raw_attendance and not e.attendance)
    # Rows that are entirely blank never produce an entry
    empty_attendance += max(grid.max_row - header_row, 0) - len(entries)

    return AttendanceAnalysis(
        sheet=grid.title,
        header_row=header_row,
        attendance_col=column,
        attendance_detected=bool(detected),
        total_rows=max(grid.max_row - header_row, 0),
        entries=entries,
        tally=tally_attendance(entries),
        empty_attendance=empty_attendance,
        other_attendance=other_attendance,
        empty_name_rows=[e for e in entries if e.name_issue == "Both names missing"],
        expected_count=expected_count,
    )


# ---------------------------------------------------------------------------
# Sheet vs store attendance comparison
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoredAttendance:
    id: int
    first_name: str
    last_name: str
    attendance: bool


@dataclass(frozen=True)
class AttendanceMismatch:
    entry: SheetEntry
    stored: StoredAttendance


@dataclass
class AttendanceComparison:
    sheet: str
    event_id: int | None
    tally: AttendanceTally
    duplicates: list[DuplicateName]
    sheet_keys: int
    stored_count: int
    stored_attendance: int
    stored_duplicate_attending: int
    in_sheet_not_in_store: list[SheetEntry]
    mismatches: list[AttendanceMismatch]
    in_store_not_in_sheet: list[StoredAttendance]

    @property
    def difference(self) -> int:
        return self.tally.count - self.stored_attendance

    @property
    def sheet_only_present(self) -> int:
        return sum(1 for m in self.mismatches if m.entry.attendance)

    @property
    def store_only_present(self) -> int:
        return sum(1 for m in self.mismatches if m.stored.attendance)

    def breakdown(self) -> dict[str, int]:
        """
        Every term is counted from the same name-keyed maps, so the terms
        always satisfy

            difference = D + E + missing_in_store + present_in_sheet_only
                         - present_in_store_only - missing_in_sheet
                         - duplicates_in_store

        A name spelled differently in the sheet and the database shows up
        as one missing_in_store plus one missing_in_sheet entry.
        """
        return {
            "sheet_attendance": self.tally.count,
            "store_attendance": self.stored_attendance,
            "difference": self.difference,
            "duplicates_in_sheet": self.tally.duplicate_count,
            "missing_names_in_sheet": self.tally.missing_name_count,
            "valid_in_sheet": self.tally.valid_count,
            "missing_in_store": len(self.in_sheet_not_in_store),
            "present_in_sheet_only": self.sheet_only_present,
            "present_in_store_only": self.store_only_present,
            "missing_in_sheet": len(self.in_store_not_in_sheet),
            "duplicates_in_store": self.stored_duplicate_attending,
        }


def stored_registrants(db: Session, event_id: int | None = None) -> list[StoredAttendance]:
    q = db.query(User).filter(User.role == "user", User.deleted_at.is_(None))
    if event_id is not None:
        q = q.filter(User.events.any(Event.id == event_id))
    return [
        StoredAttendance(
            id=u.id,
            first_name=u.first_name or "",
            last_name=u.last_name or "",
            attendance=bool(u.attendance),
        )
        for u in q.order_by(User.id.asc()).all()
    ]


def compare_attendance(
    db: Session,
    grid: SheetGrid,
    *,
    start_row: int = 2,
    last_name_col: str = "A",
    first_name_col: str = "B",
    attendance_col: str = "Q",
    event_id: int | None = None,
) -> AttendanceComparison:
    entries = read_entries(
        grid,
        start_row=start_row,
        first_name_col=first_name_col,
        last_name_col=last_name_col,
        attendance_col=attendance_col,
    )
    tally = tally_attendance(entries)

    # A key counts as present when any of its rows is
    sheet_map: dict[str, SheetEntry] = {}
    for entry in entries:
        if not entry.has_name:
            continue
        current = sheet_map.get(entry.key)
        if current is None or (entry.attendance and not current.attendance):
            sheet_map[entry.key] = entry

    stored = stored_registrants(db, event_id)
    store_map: dict[str, StoredAttendance] = {}
    for s in stored:
        store_map.setdefault(name_key(s.first_name, s.last_name), s)
    stored_attendance = sum(1 for s in stored if s.attendance)
    stored_duplicate_attending = stored_attendance - sum(1 for s in store_map.values() if s.attendance)

    in_sheet_not_in_store = []
    mismatches = []
    for key, entry in sheet_map.items():
        s = store_map.get(key)
        if s is None:
            if entry.attendance:
                in_sheet_not_in_store.append(entry)
        elif s.attendance != entry.attendance:
            mismatches.append(AttendanceMismatch(entry=entry, stored=s))

    in_store_not_in_sheet = [s for key, s in store_map.items() if key not in sheet_map and s.attendance]

    return AttendanceComparison(
        sheet=grid.title,
        event_id=event_id,
        tally=tally,
        duplicates=find_duplicate_names(entries),
        sheet_keys=len(sheet_map),
        stored_count=len(stored),
        stored_attendance=stored_attendance,
        stored_duplicate_attending=stored_duplicate_attending,
        in_sheet_not_in_store=in_sheet_not_in_store,
        mismatches=mismatches,
        in_store_not_in_sheet=in_store_not_in_sheet,
    )
