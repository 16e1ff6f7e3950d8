from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.importing.rows import NA, RowPayload, is_named
from regadmin.models.event import Event
from regadmin.models.group import Group
from regadmin.models.sphere import Sphere
from regadmin.models.user import FLAG_FIELDS, User

# Scalar columns an import may fill in on an existing registrant
COMPARABLE_FIELDS = (
    "email",
    "title",
    "middle_initial",
    "mobile_number",
    "home_address",
    "church_name",
    "church_address",
    "working_or_student",
    "vocation_work_sphere",
    "mode_of_payment",
    "proof_of_payment_url",
    "notes",
    "reference_number",
    "age_range",
)


def find_existing_registrant(db: Session, first_name: str, last_name: str) -> User | None:
    """
    Case and whitespace-insensitive lookup on both names at once.
    Rows missing either name never match anything.
    """
    if not is_named(first_name.strip(), last_name.strip()):
        return None
    return (
        db.query(User)
        .filter(
            User.role == "user",
            User.deleted_at.is_(None),
            func.lower(func.trim(User.first_name)) == first_name.strip().lower(),
            func.lower(func.trim(User.last_name)) == last_name.strip().lower(),
        )
        .order_by(User.id.asc())
        .first()
    )


@dataclass(frozen=True)
class FieldChange:
    old: object
    new: object


@dataclass
class ChangeSet:
    """Typed difference between a stored registrant and an incoming row."""

    fields: dict[str, FieldChange] = field(default_factory=dict)
    flags: dict[str, FieldChange] = field(default_factory=dict)
    group: FieldChange | None = None
    spheres: FieldChange | None = None  # sorted id lists

    @property
    def has_changes(self) -> bool:
        return bool(self.fields or self.flags or self.group or self.spheres)

    def changed_names(self) -> list[str]:
        names = list(self.fields) + list(self.flags)
        if self.group:
            names.append("group_id")
        if self.spheres:
            names.append("spheres")
        return names

    def as_dict(self) -> dict[str, dict]:
        out = {}
        for name, change in {**self.fields, **self.flags}.items():
            out[name] = {"old": change.old, "new": change.new}
        if self.group:
            out["group_id"] = {"old": self.group.old, "new": self.group.new}
        if self.spheres:
            out["spheres"] = {"old": list(self.spheres.old), "new": list(self.spheres.new)}
        return out


def diff_registrant(
    user: User,
    payload: RowPayload,
    *,
    group_id: int | None = None,
    sphere_ids: list[int] | None = None,
) -> ChangeSet:
    """
    Non-destructive merge: blank incoming values never replace stored ones.
    Flags present in the row are compared as-is; spheres as sorted id sets.
    """
    changes = ChangeSet()

    for name in COMPARABLE_FIELDS:
        incoming = payload.fields.get(name)
        if incoming is None or incoming == "":
            continue
        current = getattr(user, name)
        if incoming != current:
            changes.fields[name] = FieldChange(current, incoming)

    for name in FLAG_FIELDS:
        if name not in payload.flags:
            continue
        incoming = payload.flags[name]
        current = bool(getattr(user, name))
        if incoming != current:
            changes.flags[name] = FieldChange(current, incoming)

    if group_id is not None and group_id != user.group_id:
        changes.group = FieldChange(user.group_id, group_id)

    if sphere_ids:
        current_ids = sorted(s.id for s in user.spheres)
        incoming_ids = sorted(set(sphere_ids))
        if incoming_ids != current_ids:
            changes.spheres = FieldChange(tuple(current_ids), tuple(incoming_ids))

    return changes


def apply_changes(db: Session, user: User, changes: ChangeSet) -> None:
    for name, change in {**changes.fields, **changes.flags}.items():
        setattr(user, name, change.new)
    if changes.group:
        user.group_id = changes.group.new
    if changes.spheres:
        user.spheres = db.query(Sphere).filter(Sphere.id.in_(changes.spheres.new)).all()


def create_registrant(
    db: Session,
    payload: RowPayload,
    *,
    source_sheet: str | None,
    group_id: int | None = None,
    sphere_ids: list[int] | None = None,
) -> User:
    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        role="user",
        group_id=group_id,
        source_sheet=source_sheet,
        source_row=payload.row,
    )
    for name in COMPARABLE_FIELDS:
        setattr(user, name, payload.fields.get(name) or None)
    for name in FLAG_FIELDS:
        setattr(user, name, payload.flags.get(name, False))
    if sphere_ids:
        user.spheres = db.query(Sphere).filter(Sphere.id.in_(sphere_ids)).all()
    db.add(user)
    db.flush()
    return user


def get_or_create_group(db: Session, name: str | None) -> Group | None:
    if not name or not name.strip() or name.strip() == NA:
        return None
    name = name.strip()
    group = db.query(Group).filter(Group.name == name).one_or_none()
    if group:
        return group
    group = Group(name=name)
    db.add(group)
    db.flush()
    return group


def attach_to_event(db: Session, user: User, event: Event) -> bool:
    """Idempotent attach; True only when a new link was made."""
    if event in user.events:
        return False
    user.events.append(event)
    db.flush()
    return True
