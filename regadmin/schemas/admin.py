from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

AdminRole = Literal["admin", "super_admin"]


class AdminCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=8)
    role: AdminRole = "admin"


class AdminUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    password: str | None = Field(default=None, min_length=8)
    role: AdminRole | None = None
    is_active: bool | None = None


class AdminOut(BaseModel):
    id: int
    first_name: str | None
    last_name: str | None
    email: str | None
    role: str
    is_active: bool
    created_at: datetime
