# seed_dev.py
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy.orm import Session

load_dotenv()

from regadmin.core.passwords import hash_password
from regadmin.db.session import SessionLocal
from regadmin.jobs.spheres import seed_spheres
from regadmin.models.event import Event
from regadmin.models.sphere import Sphere
from regadmin.models.user import User

DEV_PASSWORD = "password123"


# ---------- helpers ----------

def get_or_create_admin(db: Session, email: str, first_name: str, last_name: str, role: str) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        # keep these up to date in dev
        changed = False
        if u.role != role:
            u.role = role
            changed = True
        if not u.is_active or u.deleted_at is not None:
            u.is_active = True
            u.deleted_at = None
            changed = True
        if changed:
            db.commit()
            db.refresh(u)
        return u

    u = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
        password_hash=hash_password(DEV_PASSWORD),
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def get_or_create_registrant(db: Session, first_name: str, last_name: str, email: str, sphere_slugs: list[str]) -> User:
    u = db.query(User).filter(User.email == email, User.role == "user").one_or_none()
    if u:
        return u

    u = User(first_name=first_name, last_name=last_name, email=email, role="user")
    u.spheres = db.query(Sphere).filter(Sphere.slug.in_(sphere_slugs)).all()
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def get_or_create_event(db: Session, *, name: str, created_by: User, start_date: datetime, status: str = "upcoming") -> Event:
    e = db.query(Event).filter(Event.name == name).one_or_none()
    if e:
        if e.status != status:
            e.status = status
            db.commit()
            db.refresh(e)
        return e

    e = Event(name=name, status=status, start_date=start_date, created_by_user_id=created_by.id)
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


# ---------- main ----------

def main():
    db = SessionLocal()
    try:
        seed_spheres(db)

        super_admin = get_or_create_admin(db, "superadmin@local.test", "Super", "Admin", "super_admin")
        admin = get_or_create_admin(db, "admin@local.test", "Admin", "Local", "admin")

        jane = get_or_create_registrant(db, "Jane", "Doe", "jane@local.test", ["businesseconomics"])
        juan = get_or_create_registrant(db, "Juan", "Dela Cruz", "juan@local.test", ["churchministry", "education"])

        event = get_or_create_event(
            db,
            name="Demo Conference 2024",
            created_by=super_admin,
            start_date=datetime(2024, 11, 8, 8, 0),
        )
        for u in (jane, juan):
            if u not in event.users:
                event.users.append(u)
        db.commit()

        print("\n=== DEV SEED COMPLETE ===")
        print("Admins (X-User-Email header):")
        print(f"  super_admin: {super_admin.email}")
        print(f"  admin:       {admin.email}")
        print(f"  password:    {DEV_PASSWORD}")

        print("\nRegistrants:")
        print(f"  {jane.id}: {jane.full_name}")
        print(f"  {juan.id}: {juan.full_name}")

        print("\nEvent:")
        print(f"  event_id: {event.id} ({event.name}, {len(event.users)} attendees)")

        print("\nNext steps:")
        print(f"  GET /events/{event.id}/users                 (as {admin.email})")
        print(f"  GET /stats/events/{event.id}/sphere-stats")
        print(f"  regadmin import-registrations <file.xlsx> --event-id {event.id} --dry-run")

    finally:
        db.close()


if __name__ == "__main__":
    main()
