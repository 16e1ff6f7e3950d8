from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

EventStatus = Literal["upcoming", "ongoing", "completed", "cancelled"]


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(default=None, max_length=255)
    status: EventStatus = "upcoming"
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class EventUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(default=None, max_length=255)
    start_date: datetime | None = None
    end_date: datetime | None = None


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventOut(BaseModel):
    id: int
    name: str
    description: str | None
    location: str | None
    status: str
    start_date: datetime | None
    end_date: datetime | None
    created_by_user_id: int | None
    users_count: int
    attended_count: int | None = None
    created_at: datetime
    updated_at: datetime


class EventUsersRequest(BaseModel):
    """Either a single `user_id` or a list of `user_ids`."""
    user_id: int | None = None
    user_ids: list[int] | None = Field(default=None, min_length=1, max_length=1000)

    @model_validator(mode="after")
    def check_target(self):
        if self.user_id is None and not self.user_ids:
            raise ValueError("Provide user_id or user_ids")
        return self

    def ids(self) -> list[int]:
        ids = list(self.user_ids or [])
        if self.user_id is not None and self.user_id not in ids:
            ids.append(self.user_id)
        return ids
