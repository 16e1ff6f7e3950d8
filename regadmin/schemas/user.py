from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from regadmin.schemas.sphere import SphereOut

WorkingOrStudent = Literal["working", "student"]
PaymentMode = Literal["gcash", "bank", "cash", "other"]


class RegistrantFields(BaseModel):
    title: str | None = Field(default=None, max_length=100)
    middle_initial: str | None = Field(default=None, max_length=10)
    mobile_number: str | None = Field(default=None, max_length=50)
    home_address: str | None = None
    church_name: str | None = Field(default=None, max_length=255)
    church_address: str | None = None
    working_or_student: WorkingOrStudent | None = None
    vocation_work_sphere: str | None = None
    mode_of_payment: PaymentMode | None = None
    proof_of_payment_url: str | None = None
    notes: str | None = None
    reference_number: str | None = Field(default=None, max_length=100)
    age_range: str | None = Field(default=None, max_length=50)
    group_id: int | None = None

    reconciled: bool | None = None
    finance_checked: bool | None = None
    email_confirmed: bool | None = None
    attendance: bool | None = None
    id_issued: bool | None = None
    book_given: bool | None = None


class UserCreate(RegistrantFields):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    sphere_ids: list[int] = Field(default_factory=list)


class UserUpdate(RegistrantFields):
    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    sphere_ids: list[int] | None = None


class UserOut(BaseModel):
    id: int
    first_name: str | None
    last_name: str | None
    middle_initial: str | None
    title: str | None
    email: str | None
    role: str
    mobile_number: str | None
    home_address: str | None
    church_name: str | None
    church_address: str | None
    working_or_student: str | None
    vocation_work_sphere: str | None
    mode_of_payment: str | None
    proof_of_payment_url: str | None
    notes: str | None
    reference_number: str | None
    age_range: str | None
    group_id: int | None
    group_name: str | None

    reconciled: bool
    finance_checked: bool
    email_confirmed: bool
    attendance: bool
    id_issued: bool
    book_given: bool

    source_sheet: str | None
    source_row: int | None
    spheres: list[SphereOut]
    created_at: datetime
    updated_at: datetime

    is_event_attendee: bool | None = None


class UserEventOut(BaseModel):
    id: int
    name: str
    status: str
    location: str | None
    start_date: datetime | None
    end_date: datetime | None
