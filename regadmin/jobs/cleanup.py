import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from regadmin.core.errors import ConfigurationError
from regadmin.jobs import finish
from regadmin.models.event import Event
from regadmin.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    targets: list[User] = field(default_factory=list)
    deleted: int = 0
    detached: int = 0
    permanent: bool = False
    dry_run: bool = False


def delete_registrants(db: Session, users: list[User], *, force: bool) -> int:
    """Soft delete by default; `force` removes rows and their links for good."""
    now = datetime.utcnow()
    for user in users:
        if force:
            user.events = []
            user.spheres = []
            db.delete(user)
        else:
            user.deleted_at = now
    db.flush()
    return len(users)


def _require_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise ConfigurationError(f"Event {event_id} not found")
    return event


def undo_import(
    db: Session,
    *,
    created_after: datetime | None,
    created_before: datetime | None = None,
    event_id: int | None = None,
    force: bool = False,
    dry_run: bool = False,
) -> DeletionResult:
    """Remove registrants created inside a time window, e.g. after a bad import."""
    if created_after is None:
        raise ConfigurationError("--created-after is required")
    q = db.query(User).filter(User.role == "user", User.created_at >= created_after)
    if created_before is not None:
        q = q.filter(User.created_at <= created_before)
    if event_id is not None:
        _require_event(db, event_id)
        q = q.filter(User.events.any(Event.id == event_id))
    if not force:
        q = q.filter(User.deleted_at.is_(None))

    result = DeletionResult(targets=q.order_by(User.id).all(), permanent=force, dry_run=dry_run)
    result.deleted = delete_registrants(db, result.targets, force=force)
    logger.info("undo-import: %d registrants %s", result.deleted, "purged" if force else "soft deleted")
    finish(db, dry_run)
    return result


def _blank(column):
    return or_(column.is_(None), func.trim(column) == "")


def cleanup_null_users(
    db: Session,
    *,
    trashed_only: bool = False,
    force: bool = False,
    event_id: int | None = None,
    created_after: datetime | None = None,
    dry_run: bool = False,
) -> DeletionResult:
    """Registrants whose first and last names are both blank."""
    q = db.query(User).filter(User.role == "user", _blank(User.first_name), _blank(User.last_name))
    if trashed_only:
        q = q.filter(User.deleted_at.isnot(None))
        force = True
    elif not force:
        q = q.filter(User.deleted_at.is_(None))
    if event_id is not None:
        _require_event(db, event_id)
        q = q.filter(User.events.any(Event.id == event_id))
    if created_after is not None:
        q = q.filter(User.created_at >= created_after)

    result = DeletionResult(targets=q.order_by(User.id).all(), permanent=force, dry_run=dry_run)
    result.deleted = delete_registrants(db, result.targets, force=force)
    finish(db, dry_run)
    return result


def cleanup_event_users(db: Session, event_id: int, *, dry_run: bool = False) -> DeletionResult:
    """
    Registrants attending only this event are removed entirely; everyone
    else is just detached from it.
    """
    event = _require_event(db, event_id)
    attendees = [u for u in event.users if u.role == "user"]
    only_here = [u for u in attendees if len(u.events) == 1]
    elsewhere = [u for u in attendees if len(u.events) > 1]

    result = DeletionResult(targets=only_here, permanent=True, dry_run=dry_run)
    for user in elsewhere:
        user.events.remove(event)
    result.detached = len(elsewhere)
    result.deleted = delete_registrants(db, only_here, force=True)
    logger.info("cleanup-event-users: event %d, %d deleted, %d detached", event_id, result.deleted, result.detached)
    finish(db, dry_run)
    return result
