from datetime import datetime

from pydantic import BaseModel, Field


class UserFileOut(BaseModel):
    id: int
    user_id: int
    original_name: str
    mime_type: str | None
    size: int
    uploaded_by_user_id: int | None
    created_at: datetime


class UploadSummary(BaseModel):
    total_attempted: int
    successful: int
    failed: int
    files: list[UserFileOut]


class BulkDeleteRequest(BaseModel):
    file_ids: list[int] = Field(min_length=1, max_length=100)
