from datetime import datetime

from pydantic import BaseModel


class ActivityLogOut(BaseModel):
    id: int
    admin_id: int | None
    admin_email: str | None
    action: str
    model_type: str
    model_id: int | None
    description: str | None
    old_values: dict | None
    new_values: dict | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
