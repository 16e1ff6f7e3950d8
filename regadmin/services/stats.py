from sqlalchemy.orm import Session

from regadmin.importing.spheres import slugify
from regadmin.models.associations import event_user
from regadmin.models.event import Event
from regadmin.models.sphere import Sphere
from regadmin.models.user import User

# Nearly everyone ticks this one, so it only counts when nothing else is ticked
GENERIC_SPHERE_SLUG = slugify("Church/Ministry")
OTHERS_LABEL = "Others (No Sphere)"


def primary_sphere(spheres: list[Sphere]) -> Sphere | None:
    ordered = sorted(spheres, key=lambda s: s.id)
    if not ordered:
        return None
    if len(ordered) > 1 and ordered[0].slug == GENERIC_SPHERE_SLUG:
        return ordered[1]
    return ordered[0]


def sphere_stats_for_event(db: Session, event: Event) -> dict:
    """One primary sphere per attending registrant, with percentages of the total."""
    attendees = (
        db.query(User)
        .join(event_user, event_user.c.user_id == User.id)
        .filter(
            event_user.c.event_id == event.id,
            User.role == "user",
            User.attendance.is_(True),
            User.deleted_at.is_(None),
        )
        .order_by(User.id)
        .all()
    )
    total = len(attendees)

    counts: dict[int, int] = {}
    spheres: dict[int, Sphere] = {}
    without = 0
    for user in attendees:
        sphere = primary_sphere(list(user.spheres))
        if sphere is None:
            without += 1
            continue
        spheres[sphere.id] = sphere
        counts[sphere.id] = counts.get(sphere.id, 0) + 1

    def pct(n: int) -> float:
        return round(n / total * 100, 2) if total else 0

    stats = [
        {
            "sphere_id": s.id,
            "sphere_name": s.name,
            "sphere_slug": s.slug,
            "user_count": counts[s.id],
            "percentage": pct(counts[s.id]),
        }
        for s in sorted(spheres.values(), key=lambda s: s.name)
    ]
    if without:
        stats.append(
            {
                "sphere_id": None,
                "sphere_name": OTHERS_LABEL,
                "sphere_slug": "others",
                "user_count": without,
                "percentage": pct(without),
            }
        )

    return {
        "event_id": event.id,
        "event_name": event.name,
        "total_users": total,
        "sphere_stats": stats,
        "summary": {
            "total_spheres_represented": len(counts),
            "users_without_spheres": without,
            "most_popular_sphere": max(stats, key=lambda s: s["user_count"]) if stats else None,
        },
    }

