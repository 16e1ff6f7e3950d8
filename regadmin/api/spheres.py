from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from regadmin.api.events import get_event_or_404
from regadmin.core.rbac import require_admin
from regadmin.core.security import get_current_user
from regadmin.db.session import get_db
from regadmin.models.sphere import Sphere
from regadmin.models.user import User
from regadmin.schemas.sphere import SphereOut
from regadmin.services.stats import sphere_stats_for_event

router = APIRouter(tags=["spheres"])


@router.get("/spheres", response_model=list[SphereOut])
def list_spheres(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return [SphereOut(id=s.id, name=s.name, slug=s.slug) for s in db.query(Sphere).order_by(Sphere.id).all()]


@router.get("/stats/events/{event_id}/sphere-stats")
def event_sphere_stats(
    event_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Attending registrants per primary sphere, plus an 'Others (No Sphere)' bucket."""
    return sphere_stats_for_event(db, get_event_or_404(db, event_id))
