from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from regadmin.db.base import Base
from regadmin.models.associations import event_user, user_sphere

ROLES = ("super_admin", "admin", "user")
ADMIN_ROLES = ("super_admin", "admin")
WORKING_OR_STUDENT = ("working", "student")
PAYMENT_MODES = ("gcash", "bank", "cash", "other")

# Yes/no columns carried on every registrant
FLAG_FIELDS = (
    "reconciled",
    "finance_checked",
    "email_confirmed",
    "attendance",
    "id_issued",
    "book_given",
)


class User(Base):
    """A registrant or an administrator; `role` tells them apart."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('super_admin','admin','user')", name="ck_users_role"),
        CheckConstraint(
            "working_or_student IS NULL OR working_or_student IN ('working','student')",
            name="ck_users_working_or_student",
        ),
        CheckConstraint(
            "mode_of_payment IS NULL OR mode_of_payment IN ('gcash','bank','cash','other')",
            name="ck_users_mode_of_payment",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    middle_initial: Mapped[str | None] = mapped_column(String(10), nullable=True)
    title: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Imported registrants frequently share or omit an email address
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    profile_image: Mapped[str | None] = mapped_column(String(500), nullable=True)

    mobile_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    home_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    church_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    church_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    working_or_student: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vocation_work_sphere: Mapped[str | None] = mapped_column(Text, nullable=True)
    mode_of_payment: Mapped[str | None] = mapped_column(String(20), nullable=True)
    proof_of_payment_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age_range: Mapped[str | None] = mapped_column(String(50), nullable=True)

    group_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )

    reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    finance_checked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attendance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    id_issued: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    book_given: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Import bookkeeping for --resume / --skip-existing
    source_sheet: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    source_row: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    group = relationship("Group", back_populates="users")
    spheres = relationship("Sphere", secondary=user_sphere, back_populates="users", order_by="Sphere.id")
    events = relationship("Event", secondary=event_user, back_populates="users")
    files = relationship("UserFile", back_populates="user", cascade="all, delete-orphan", foreign_keys="UserFile.user_id")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"
