"""Day-by-day attendance sheet: one row per person, a 1 under each day attended."""
import logging
import re
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from regadmin.core.errors import ConfigurationError
from regadmin.importing.headers import build_column_index
from regadmin.importing.matching import find_existing_registrant
from regadmin.importing.rows import cell_text, default_name
from regadmin.importing.spheres import SphereResolver
from regadmin.importing.workbook import SheetGrid, column_range
from regadmin.jobs import finish
from regadmin.models.event import Event
from regadmin.models.sphere import Sphere
from regadmin.models.user import User

logger = logging.getLogger(__name__)

# Survey "areas" answer -> sphere name
AREA_SPHERES = {
    "economics": "Business/Economics",
    "education": "Education",
    "intellectual": "Education",
    "political": "Government",
    "social": "Family/Community",
    "spiritual": "Church/Ministry",
}

DAYS = ("day 1", "day 2", "day 3")

_AREA_SPLIT = re.compile(r"[;,|\n]+")


def area_sphere_ids(areas: str, resolver: SphereResolver) -> list[int]:
    ids = []
    for area in _AREA_SPLIT.split(areas or ""):
        name = AREA_SPHERES.get(area.strip().lower())
        if not name:
            continue
        sphere_id = resolver.lookup(name)
        if sphere_id is not None and sphere_id not in ids:
            ids.append(sphere_id)
    return ids


@dataclass
class EventRegistrationResult:
    rows: int = 0
    created: int = 0
    existing: int = 0
    attachments: dict[str, int] = field(default_factory=lambda: {d: 0 for d in DAYS})
    preview: list[dict] = field(default_factory=list)
    dry_run: bool = False


def import_event_registrations(
    db: Session,
    grid: SheetGrid,
    *,
    day_event_ids: dict[str, int | None],
    header_row: int = 1,
    start_col: str = "A",
    end_col: str = "H",
    preview_limit: int = 10,
    dry_run: bool = False,
) -> EventRegistrationResult:
    events: dict[str, Event] = {}
    for day, event_id in day_event_ids.items():
        if event_id is None:
            continue
        event = db.get(Event, event_id)
        if event is None:
            raise ConfigurationError(f"Event ID {event_id} not found for {day.title()}")
        events[day] = event
    if not events:
        raise ConfigurationError("At least one of --day1-event-id, --day2-event-id, --day3-event-id is required")

    columns = column_range(start_col, end_col)
    headers = {h.normalized: h.column for h in build_column_index(grid.row_values(header_row, columns))}
    for required in ("last name", "first name"):
        if required not in headers:
            raise ConfigurationError(f"Required column '{required}' not found in header row {header_row}")

    def value(name, row):
        column = headers.get(name)
        return grid.cell(column, row) if column else None

    resolver = SphereResolver(db)
    result = EventRegistrationResult(dry_run=dry_run)
    for row in range(header_row + 1, grid.max_row + 1):
        last_name = cell_text(value("last name", row))
        first_name = cell_text(value("first name", row))
        if not last_name and not first_name:
            continue
        result.rows += 1
        days = [d for d in DAYS if cell_text(value(d, row)) == "1"]

        user = find_existing_registrant(db, first_name, last_name)
        if user is None:
            user = User(
                first_name=default_name(first_name),
                last_name=default_name(last_name),
                email=cell_text(value("email", row)) or None,
                mobile_number=cell_text(value("contact number", row)) or None,
                role="user",
            )
            db.add(user)
            db.flush()
            result.created += 1
        else:
            result.existing += 1

        sphere_ids = area_sphere_ids(cell_text(value("areas", row)), resolver)
        current = {s.id for s in user.spheres}
        new_ids = [i for i in sphere_ids if i not in current]
        if new_ids:
            user.spheres.extend(db.query(Sphere).filter(Sphere.id.in_(new_ids)).all())

        for day in days:
            event = events.get(day)
            if event is not None and event not in user.events:
                user.events.append(event)
                result.attachments[day] += 1

        if len(result.preview) < preview_limit:
            result.preview.append({"row": row, "first_name": first_name, "last_name": last_name, "days": days})
        db.flush()

    logger.info("event registrations: %d created, %d existing", result.created, result.existing)
    finish(db, dry_run)
    return result
