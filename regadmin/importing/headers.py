import re
from dataclasses import dataclass, field

_WHITESPACE = re.compile(r"\s+")

# Normalized header text -> registrant field. Variants seen in real sheets
# (including the "confrimation" typo) are listed verbatim.
COLUMN_MAP: dict[str, str] = {
    "email address": "email",
    "email": "email",
    "title": "title",
    "last name": "last_name",
    "first name": "first_name",
    "middle initial": "middle_initial",
    "mobile number": "mobile_number",
    "contact number": "mobile_number",
    "home address (city/town/province [e.g. taguig city])": "home_address",
    "home address": "home_address",
    "name of church where you attend": "church_name",
    "church address (city/town/province [e.g. taguig city])": "church_address",
    "church address": "church_address",
    "working or student": "working_or_student",
    "vocation/work sphere": "spheres_raw",
    "vocation/work sphere (check all that apply)": "spheres_raw",
    "mode of payment": "mode_of_payment",
    "proof of payment (please upload a clear photo of your deposit slip)": "proof_of_payment_url",
    "proof of payment": "proof_of_payment_url",
    "notes": "notes",
    "group": "group_name",
    "reference number": "reference_number",
    "reconciled": "reconciled",
    "victory pampanga finance ms. abbey": "finance_checked",
    "email confrimation tn secretariat": "email_confirmed",
    "email confirmation tn secretariat": "email_confirmed",
    "attendance": "attendance",
    "id": "id_issued",
    "book": "book_given",
    "age range": "age_range",
}

# Fields an import can populate; interactive overrides must target one of these.
TARGET_FIELDS: tuple[str, ...] = tuple(dict.fromkeys(COLUMN_MAP.values()))

# Headers an operator would expect to see in a registration sheet
EXPECTED_HEADERS: tuple[str, ...] = (
    "email address",
    "last name",
    "first name",
    "mobile number",
    "vocation/work sphere",
    "attendance",
)

UNMAP = "-"


def normalize_header(raw) -> str:
    """Lowercase, newlines to spaces, collapse whitespace runs, trim."""
    if raw is None:
        return ""
    text = str(raw).replace("\r", " ").replace("\n", " ")
    return _WHITESPACE.sub(" ", text).strip().lower()


@dataclass(frozen=True)
class HeaderCell:
    column: str  # column letter, e.g. "C"
    raw: str
    normalized: str


@dataclass
class ColumnMapping:
    """Effective header -> field assignment for one sheet."""

    headers: list[HeaderCell]
    fields: dict[str, str] = field(default_factory=dict)  # field -> column letter
    unmapped: list[HeaderCell] = field(default_factory=list)
    overridden: set[str] = field(default_factory=set)  # column letters the operator reassigned

    def column_for(self, field_name: str) -> str | None:
        return self.fields.get(field_name)

    def field_for(self, column: str) -> str | None:
        for name, col in self.fields.items():
            if col == column:
                return name
        return None

    def missing_expected(self) -> list[str]:
        present = {h.normalized for h in self.headers}
        return [h for h in EXPECTED_HEADERS if h not in present]


def build_column_index(header_row: dict[str, object]) -> list[HeaderCell]:
    """Header cells in sheet order; blank headers are left out."""
    cells = []
    for column, raw in header_row.items():
        normalized = normalize_header(raw)
        if not normalized:
            continue
        cells.append(HeaderCell(column=column, raw=str(raw).strip(), normalized=normalized))
    return cells


def map_columns(headers: list[HeaderCell], table: dict[str, str] | None = None) -> ColumnMapping:
    """
    Exact lookup of each normalized header in `table`.

    The first column claiming a field wins; later duplicates are reported
    as unmapped so their data is never silently merged.
    """
    table = COLUMN_MAP if table is None else table
    mapping = ColumnMapping(headers=headers)
    for cell in headers:
        target = table.get(cell.normalized)
        if target is None or target in mapping.fields:
            mapping.unmapped.append(cell)
            continue
        mapping.fields[target] = cell.column
    return mapping


def apply_overrides(mapping: ColumnMapping, overrides: dict[str, str]) -> ColumnMapping:
    """
    Return a new mapping with operator overrides applied.

    `overrides` maps column letter -> field name, or "-" to unmap the column.
    """
    by_column = {col: name for name, col in mapping.fields.items()}
    for column, target in overrides.items():
        column = column.upper()
        target = target.strip()
        if target == UNMAP:
            by_column.pop(column, None)
            continue
        if target not in TARGET_FIELDS:
            raise ValueError(f"Unknown field '{target}'. Valid fields: {', '.join(TARGET_FIELDS)}")
        for other, name in list(by_column.items()):
            if name == target and other != column:
                del by_column[other]
        by_column[column] = target

    result = ColumnMapping(headers=mapping.headers, overridden=mapping.overridden | {c.upper() for c in overrides})
    for cell in mapping.headers:
        name = by_column.get(cell.column)
        if name is None:
            result.unmapped.append(cell)
        else:
            result.fields[name] = cell.column
    return result
