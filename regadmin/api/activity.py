from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from regadmin.core.rbac import require_admin
from regadmin.db.session import get_db
from regadmin.models.activity_log import ActivityLog
from regadmin.models.user import User
from regadmin.schemas.activity import ActivityLogOut
from regadmin.schemas.pagination import paginate

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


@router.get("")
def list_activity_logs(
    model_type: str | None = Query(default=None),
    model_id: int | None = Query(default=None),
    action: str | None = Query(default=None),
    admin_id: int | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    q = db.query(ActivityLog)

    if model_type:
        q = q.filter(ActivityLog.model_type == model_type)
    if model_id is not None:
        q = q.filter(ActivityLog.model_id == model_id)
    if action:
        q = q.filter(ActivityLog.action == action)
    if admin_id is not None:
        q = q.filter(ActivityLog.admin_id == admin_id)

    emails = dict(db.query(User.id, User.email).filter(User.role != "user").all())

    def to_out(r: ActivityLog) -> ActivityLogOut:
        return ActivityLogOut(
            id=r.id,
            admin_id=r.admin_id,
            admin_email=emails.get(r.admin_id),
            action=r.action,
            model_type=r.model_type,
            model_id=r.model_id,
            description=r.description,
            old_values=r.old_values,
            new_values=r.new_values,
            ip_address=r.ip_address,
            user_agent=r.user_agent,
            created_at=r.created_at,
        )

    q = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    return paginate(q, to_out, limit=limit, offset=offset, include_pagination=include_pagination)
