import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from regadmin.core.errors import ConfigurationError
from regadmin.importing.spheres import slugify
from regadmin.jobs import finish
from regadmin.models.sphere import Sphere
from regadmin.models.user import ROLES, User

logger = logging.getLogger(__name__)

SPHERE_NAMES = [
    "Church/Ministry",
    "Family/Community",
    "Government",
    "Education",
    "Business/Economics",
    "Media/Arts/Entertainment",
    "Every Nation Campus (ENC)",
]


def seed_spheres(db: Session, *, dry_run: bool = False) -> dict[str, int]:
    stats = {"created": 0, "updated": 0, "unchanged": 0}
    for name in SPHERE_NAMES:
        slug = slugify(name)
        sphere = db.query(Sphere).filter(Sphere.slug == slug).one_or_none()
        if sphere is None:
            db.add(Sphere(name=name, slug=slug))
            stats["created"] += 1
        elif sphere.name != name:
            sphere.name = name
            stats["updated"] += 1
        else:
            stats["unchanged"] += 1
    db.flush()
    finish(db, dry_run)
    return stats


@dataclass
class SphereAttachResult:
    spheres: list[Sphere] = field(default_factory=list)
    users: int = 0
    links_created: int = 0
    dry_run: bool = False


def attach_spheres(
    db: Session,
    *,
    sphere_ids: list[int] | None = None,
    all_spheres: bool = False,
    role: str = "user",
    without_spheres: bool = False,
    dry_run: bool = False,
) -> SphereAttachResult:
    """Attach the chosen spheres to every active user of `role`, keeping existing links."""
    if role not in ROLES:
        raise ConfigurationError(f"Unknown role '{role}'. Use one of: {', '.join(ROLES)}")
    if all_spheres:
        spheres = db.query(Sphere).order_by(Sphere.id).all()
    elif sphere_ids:
        spheres = db.query(Sphere).filter(Sphere.id.in_(sphere_ids)).order_by(Sphere.id).all()
        missing = sorted(set(sphere_ids) - {s.id for s in spheres})
        if missing:
            raise ConfigurationError(f"Sphere id(s) not found: {', '.join(map(str, missing))}")
    else:
        raise ConfigurationError("Pass --sphere-id (repeatable) or --all-spheres")
    if not spheres:
        raise ConfigurationError("No spheres exist; run seed-spheres first")

    q = db.query(User).filter(User.role == role, User.deleted_at.is_(None))
    if without_spheres:
        q = q.filter(~User.spheres.any())
    users = q.order_by(User.id).all()

    result = SphereAttachResult(spheres=spheres, users=len(users), dry_run=dry_run)
    for user in users:
        current = {s.id for s in user.spheres}
        for sphere in spheres:
            if sphere.id not in current:
                user.spheres.append(sphere)
                result.links_created += 1
    db.flush()
    finish(db, dry_run)
    return result


@dataclass
class SphereFixResult:
    kept: int = 0
    cleaned: list[dict] = field(default_factory=list)  # snapshots taken before clearing
    dry_run: bool = False


def fix_vocation_spheres(db: Session, *, dry_run: bool = False) -> SphereFixResult:
    """Registrants who did not attend lose their sphere links and sphere text."""
    users = (
        db.query(User)
        .filter(User.vocation_work_sphere.isnot(None), User.vocation_work_sphere != "")
        .order_by(User.id)
        .all()
    )
    result = SphereFixResult(dry_run=dry_run)
    for user in users:
        if user.attendance:
            result.kept += 1
            continue
        result.cleaned.append(
            {
                "id": user.id,
                "name": user.full_name,
                "email": user.email,
                "vocation_work_sphere": user.vocation_work_sphere,
                "sphere_count": len(user.spheres),
            }
        )
        user.spheres = []
        user.vocation_work_sphere = None
    db.flush()
    logger.info("fix-vocation-spheres: %d cleaned, %d kept", len(result.cleaned), result.kept)
    finish(db, dry_run)
    return result
