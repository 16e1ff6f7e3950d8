from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from regadmin.models.activity_log import ActivityLog
from regadmin.models.user import User


def log_activity(
    *,
    db: Session,
    actor: User | None,
    action: str,
    model_type: str,
    model_id: int | None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
    description: str | None = None,
    request: Request | None = None,
):
    entry = ActivityLog(
        admin_id=actor.id if actor else None,
        action=action,
        model_type=model_type,
        model_id=model_id,
        old_values=old_values,
        new_values=new_values,
        description=description,
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    db.add(entry)


def snapshot(obj, fields) -> dict[str, Any]:
    """JSON-safe copy of the named attributes for old/new value columns."""
    data = {}
    for name in fields:
        value = getattr(obj, name)
        data[name] = value.isoformat() if hasattr(value, "isoformat") else value
    return data
