from dataclasses import dataclass

from sqlalchemy.orm import Session

from regadmin.models.event import Event
from regadmin.models.user import User


@dataclass
class MembershipChange:
    total_attempted: int = 0
    changed: int = 0
    unchanged: int = 0
    total_attendees: int = 0  # event size right after the change

    def as_attach_stats(self) -> dict:
        return {
            "total_attempted": self.total_attempted,
            "newly_attached": self.changed,
            "already_attached": self.unchanged,
            "total_attendees": self.total_attendees,
        }

    def as_detach_stats(self) -> dict:
        return {
            "total_attempted": self.total_attempted,
            "actually_detached": self.changed,
            "not_attached": self.unchanged,
            "total_attendees": self.total_attendees,
        }


def attach_users(db: Session, event: Event, users: list[User]) -> MembershipChange:
    """Idempotent: users already attending are counted, not duplicated."""
    change = MembershipChange(total_attempted=len(users))
    current = {u.id for u in event.users}
    for user in users:
        if user.id in current:
            change.unchanged += 1
            continue
        event.users.append(user)
        current.add(user.id)
        change.changed += 1
    db.flush()
    change.total_attendees = len(event.users)
    return change


def detach_users(db: Session, event: Event, users: list[User]) -> MembershipChange:
    change = MembershipChange(total_attempted=len(users))
    ids = {u.id for u in users}
    keep = [u for u in event.users if u.id not in ids]
    change.changed = len(event.users) - len(keep)
    change.unchanged = len(ids) - change.changed
    event.users = keep
    db.flush()
    change.total_attendees = len(keep)
    return change
