from openpyxl import Workbook
from sqlalchemy.orm import Session

from regadmin.importing.spheres import slugify
from regadmin.jobs.spheres import SPHERE_NAMES
from regadmin.models.event import Event
from regadmin.models.sphere import Sphere
from regadmin.models.user import User

ADMIN_EMAIL = "admin@local.test"
SUPER_EMAIL = "super@local.test"


def create_user(db: Session, first_name="Jane", last_name="Doe", email=None, **kwargs) -> User:
    u = User(first_name=first_name, last_name=last_name, email=email, role="user", **kwargs)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def create_admin(db: Session, email=ADMIN_EMAIL, role="admin", first_name="Admin", last_name="Local") -> User:
    u = User(first_name=first_name, last_name=last_name, email=email, role=role, is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def create_super_admin(db: Session, email=SUPER_EMAIL) -> User:
    return create_admin(db, email=email, role="super_admin", first_name="Super", last_name="Admin")


def create_event(db: Session, name="Conference 2024", created_by: User | None = None, **kwargs) -> Event:
    e = Event(name=name, created_by_user_id=created_by.id if created_by else None, **kwargs)
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


def create_sphere(db: Session, name: str) -> Sphere:
    s = Sphere(name=name, slug=slugify(name))
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


def seed_spheres(db: Session) -> dict[str, Sphere]:
    """The standard spheres, keyed by name; ids follow list order."""
    return {name: create_sphere(db, name) for name in SPHERE_NAMES}


def auth(email: str) -> dict[str, str]:
    return {"X-User-Email": email}


def write_workbook(path, rows: list[list], title: str = "Sheet1", extra_sheets: dict[str, list[list]] | None = None):
    """
    Save an .xlsx whose first sheet holds `rows` starting at A1.
    None cells stay empty.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    for name, sheet_rows in (extra_sheets or {}).items():
        extra = wb.create_sheet(name)
        for row in sheet_rows:
            extra.append(row)
    wb.save(path)
    return path
