from dataclasses import dataclass, field
from datetime import date, datetime

from regadmin.models.user import FLAG_FIELDS

NA = "N/A"

TRUTHY = frozenset({"1", "y", "yes", "true", "t", "checked", "x", "present"})


def cell_text(value) -> str:
    """Render a cell as trimmed text; whole-number floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def to_bool(value) -> bool:
    return cell_text(value).lower() in TRUTHY


def is_row_empty(values) -> bool:
    """True when every cell in the span is blank after trimming."""
    return all(cell_text(v) == "" for v in values)


def default_name(value) -> str:
    text = cell_text(value)
    return text if text else NA


def is_named(first_name: str, last_name: str) -> bool:
    """Both names present; only such rows take part in matching."""
    return first_name != NA and last_name != NA and bool(first_name) and bool(last_name)


def name_key(first_name, last_name) -> str:
    """Case and whitespace-insensitive 'first|last' key."""
    return f"{cell_text(first_name).lower()}|{cell_text(last_name).lower()}"


def normalize_working_or_student(value) -> str | None:
    text = cell_text(value).lower()
    if "work" in text:
        return "working"
    if "student" in text:
        return "student"
    return None


def normalize_mode_of_payment(value) -> str | None:
    text = cell_text(value).lower()
    if not text:
        return None
    for mode in ("gcash", "bank", "cash"):
        if mode in text:
            return mode
    return "other"


@dataclass
class RowPayload:
    """One usable data row, already coerced to registrant field types."""

    row: int
    first_name: str
    last_name: str
    fields: dict[str, str | None] = field(default_factory=dict)
    flags: dict[str, bool] = field(default_factory=dict)
    group_name: str | None = None
    spheres_raw: str = ""

    @property
    def is_named(self) -> bool:
        return is_named(self.first_name, self.last_name)

    def as_preview(self) -> dict:
        data = {"row": self.row, "first_name": self.first_name, "last_name": self.last_name}
        data.update({k: v for k, v in self.fields.items() if v})
        data.update({k: v for k, v in self.flags.items() if v})
        if self.group_name:
            data["group_name"] = self.group_name
        return data


# Plain text columns copied onto the registrant as-is
TEXT_FIELDS = (
    "email",
    "title",
    "middle_initial",
    "mobile_number",
    "home_address",
    "church_name",
    "church_address",
    "proof_of_payment_url",
    "notes",
    "reference_number",
    "age_range",
)


def classify_row(row: int, values: dict[str, object], fields: dict[str, str]) -> RowPayload | None:
    """
    Return None for an empty row, otherwise the mapped payload.

    `values` is column letter -> raw cell for the configured span and
    `fields` is the effective field -> column letter map.
    """
    if is_row_empty(values.values()):
        return None

    def raw(name):
        column = fields.get(name)
        return values.get(column) if column else None

    payload = RowPayload(
        row=row,
        first_name=default_name(raw("first_name")),
        last_name=default_name(raw("last_name")),
    )
    for name in TEXT_FIELDS:
        if name in fields:
            payload.fields[name] = cell_text(raw(name)) or None
    if "working_or_student" in fields:
        payload.fields["working_or_student"] = normalize_working_or_student(raw("working_or_student"))
    if "mode_of_payment" in fields:
        payload.fields["mode_of_payment"] = normalize_mode_of_payment(raw("mode_of_payment"))
    for name in FLAG_FIELDS:
        if name in fields:
            payload.flags[name] = to_bool(raw(name))
    payload.group_name = cell_text(raw("group_name")) or None
    payload.spheres_raw = cell_text(raw("spheres_raw"))
    return payload
