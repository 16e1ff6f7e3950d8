from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table

from regadmin.db.base import Base

# Registrant <-> Event attendance
event_user = Table(
    "event_user",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=datetime.utcnow),
)

# Registrant <-> Sphere tagging
user_sphere = Table(
    "user_sphere",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("sphere_id", Integer, ForeignKey("spheres.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=datetime.utcnow),
)
