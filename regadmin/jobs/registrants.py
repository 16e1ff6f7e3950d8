import logging
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.core.errors import ConfigurationError
from regadmin.core.passwords import MIN_PASSWORD_LENGTH, hash_password
from regadmin.importing.matching import find_existing_registrant
from regadmin.importing.rows import cell_text
from regadmin.importing.workbook import SheetGrid
from regadmin.jobs import finish
from regadmin.models.event import Event
from regadmin.models.user import ADMIN_ROLES, ROLES, User
from regadmin.services.attendance import MembershipChange, attach_users, detach_users

logger = logging.getLogger(__name__)

STUDENT_AGE_RANGE = "18-24"


@dataclass
class WorkingStatusResult:
    age_ranges: dict[str, int] = field(default_factory=dict)  # every range in the table -> count
    before: dict[str, int] = field(default_factory=dict)  # current status of the targets
    updated: int = 0
    dry_run: bool = False


def update_working_status(db: Session, *, age_range: str | None = None, dry_run: bool = False) -> WorkingStatusResult:
    """Everyone outside the student age range is marked working."""
    result = WorkingStatusResult(dry_run=dry_run)
    rows = (
        db.query(User.age_range, func.count(User.id))
        .filter(User.age_range.isnot(None))
        .group_by(User.age_range)
        .order_by(User.age_range)
        .all()
    )
    result.age_ranges = {r: n for r, n in rows}

    q = db.query(User).filter(User.age_range.isnot(None))
    if age_range:
        q = q.filter(User.age_range == age_range)
    else:
        q = q.filter(User.age_range != STUDENT_AGE_RANGE)
    users = q.all()

    for user in users:
        status = user.working_or_student or "null"
        result.before[status] = result.before.get(status, 0) + 1
        if user.working_or_student != "working":
            user.working_or_student = "working"
            result.updated += 1
    db.flush()
    finish(db, dry_run)
    return result


@dataclass
class AgeRangeResult:
    updated: list[dict] = field(default_factory=list)
    unchanged: int = 0
    not_found: list[dict] = field(default_factory=list)
    skipped_empty: int = 0
    dry_run: bool = False


def import_age_ranges(
    db: Session,
    grid: SheetGrid,
    *,
    start_row: int = 2,
    end_row: int | None = None,
    last_name_col: str = "A",
    first_name_col: str = "B",
    age_range_col: str = "C",
    dry_run: bool = False,
) -> AgeRangeResult:
    result = AgeRangeResult(dry_run=dry_run)
    last = min(end_row or grid.max_row, grid.max_row)
    for row in range(start_row, last + 1):
        last_name = cell_text(grid.cell(last_name_col, row))
        first_name = cell_text(grid.cell(first_name_col, row))
        age_range = cell_text(grid.cell(age_range_col, row))
        if not last_name and not first_name:
            result.skipped_empty += 1
            continue

        user = find_existing_registrant(db, first_name, last_name)
        if user is None:
            result.not_found.append({"row": row, "first_name": first_name, "last_name": last_name, "age_range": age_range})
            continue
        if not age_range or user.age_range == age_range:
            result.unchanged += 1
            continue
        result.updated.append(
            {"row": row, "id": user.id, "name": user.full_name, "old": user.age_range, "new": age_range}
        )
        user.age_range = age_range
    db.flush()
    finish(db, dry_run)
    return result


def add_users_to_event(
    db: Session,
    event_id: int,
    *,
    user_ids: list[int] | None = None,
    role: str | None = None,
    all_users: bool = False,
    detach: bool = False,
    dry_run: bool = False,
) -> MembershipChange:
    event = db.get(Event, event_id)
    if event is None or event.deleted_at is not None:
        raise ConfigurationError(f"Event {event_id} not found")

    q = db.query(User).filter(User.deleted_at.is_(None))
    if user_ids:
        q = q.filter(User.id.in_(user_ids))
    elif role:
        if role not in ROLES:
            raise ConfigurationError(f"Unknown role '{role}'. Use one of: {', '.join(ROLES)}")
        q = q.filter(User.role == role)
    elif not all_users:
        raise ConfigurationError("Pass --users, --role or --all")
    users = q.order_by(User.id).all()
    if user_ids:
        missing = sorted(set(user_ids) - {u.id for u in users})
        if missing:
            logger.warning("User id(s) not found: %s", missing)

    change = detach_users(db, event, users) if detach else attach_users(db, event, users)
    finish(db, dry_run)
    return change


def similar_admin_emails(db: Session, email: str, limit: int = 5) -> list[str]:
    local = email.split("@")[0].strip().lower()
    rows = (
        db.query(User.email)
        .filter(User.role.in_(ADMIN_ROLES), User.email.ilike(f"%{local}%"))
        .order_by(User.email)
        .limit(limit)
        .all()
    )
    return [r[0] for r in rows]


def reset_admin_password(db: Session, email: str, password: str, *, dry_run: bool = False) -> User:
    admin = (
        db.query(User)
        .filter(func.lower(User.email) == email.strip().lower(), User.role.in_(ADMIN_ROLES))
        .one_or_none()
    )
    if admin is None:
        raise ConfigurationError(
            f"No admin found with email '{email}'",
            hint=similar_admin_emails(db, email),
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ConfigurationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    admin.password_hash = hash_password(password)
    finish(db, dry_run)
    return admin
