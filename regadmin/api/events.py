from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.api.users import to_out as user_to_out
from regadmin.core.activity import log_activity, snapshot
from regadmin.core.filtering import apply_search, apply_sort
from regadmin.core.rbac import require_admin
from regadmin.core.security import get_current_user
from regadmin.db.session import get_db
from regadmin.models.associations import event_user
from regadmin.models.event import Event
from regadmin.models.user import User
from regadmin.schemas.event import EventCreate, EventOut, EventStatusUpdate, EventUpdate, EventUsersRequest
from regadmin.schemas.pagination import paginate
from regadmin.services.attendance import attach_users, detach_users
from regadmin.services.exports import event_attendees_csv

router = APIRouter(prefix="/events", tags=["events"])

LOGGED_FIELDS = ("name", "description", "location", "status", "start_date", "end_date")

SORTABLE = {
    "id": Event.id,
    "name": Event.name,
    "start_date": Event.start_date,
    "status": Event.status,
    "created_at": Event.created_at,
}

ATTENDEE_SORTABLE = {
    "id": User.id,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "email": User.email,
    "created_at": User.created_at,
}


def to_out(e: Event, users_count: int | None = None, attended_count: int | None = None) -> EventOut:
    return EventOut(
        id=e.id,
        name=e.name,
        description=e.description,
        location=e.location,
        status=e.status,
        start_date=e.start_date,
        end_date=e.end_date,
        created_by_user_id=e.created_by_user_id,
        users_count=len(e.users) if users_count is None else users_count,
        attended_count=attended_count,
        created_at=e.created_at,
        updated_at=e.updated_at,
    )


def get_event_or_404(db: Session, event_id: int) -> Event:
    e = db.get(Event, event_id)
    if not e or e.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Event not found")
    return e


@router.get("")
def list_events(
    search: str | None = Query(default=None, description="Search by name or location"),
    status: str | None = Query(default=None, description="Filter by status (upcoming, ongoing, completed, cancelled)"),
    sort: str | None = Query(default="created_at"),
    direction: str | None = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=15, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    counts = dict(
        db.query(event_user.c.event_id, func.count(event_user.c.user_id))
        .group_by(event_user.c.event_id)
        .all()
    )
    query = db.query(Event).filter(Event.deleted_at.is_(None))
    query = apply_search(query, search, [Event.name, Event.location])
    if status and status != "all":
        query = query.filter(Event.status == status)
    query = apply_sort(query, SORTABLE, sort, direction)
    return paginate(
        query,
        lambda e: to_out(e, users_count=counts.get(e.id, 0)),
        limit=limit,
        offset=offset,
        include_pagination=include_pagination,
    )


@router.get("/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    e = get_event_or_404(db, event_id)
    attended = sum(1 for u in e.users if u.attendance and u.deleted_at is None)
    return to_out(e, attended_count=attended)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = Event(**payload.model_dump(), created_by_user_id=current_user.id)
    db.add(e)
    db.flush()

    log_activity(
        db=db,
        actor=current_user,
        action="created",
        model_type="Event",
        model_id=e.id,
        new_values=snapshot(e, LOGGED_FIELDS),
        request=request,
    )

    db.commit()
    db.refresh(e)
    return to_out(e)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    before = snapshot(e, LOGGED_FIELDS)

    for name, value in payload.model_dump(exclude_unset=True).items():
        setattr(e, name, value)
    if e.start_date and e.end_date and e.end_date < e.start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")

    log_activity(
        db=db,
        actor=current_user,
        action="updated",
        model_type="Event",
        model_id=e.id,
        old_values=before,
        new_values=snapshot(e, LOGGED_FIELDS),
        request=request,
    )

    db.commit()
    db.refresh(e)
    return to_out(e)


@router.patch("/{event_id}/status", response_model=EventOut)
def update_event_status(
    event_id: int,
    payload: EventStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    prev = e.status
    e.status = payload.status

    log_activity(
        db=db,
        actor=current_user,
        action="status_changed",
        model_type="Event",
        model_id=e.id,
        old_values={"status": prev},
        new_values={"status": e.status},
        request=request,
    )

    db.commit()
    db.refresh(e)
    return to_out(e)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    e.deleted_at = datetime.utcnow()
    log_activity(
        db=db,
        actor=current_user,
        action="deleted",
        model_type="Event",
        model_id=e.id,
        old_values=snapshot(e, LOGGED_FIELDS),
        request=request,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _load_users(db: Session, ids: list[int]) -> list[User]:
    users = db.query(User).filter(User.id.in_(ids), User.deleted_at.is_(None)).all()
    missing = sorted(set(ids) - {u.id for u in users})
    if missing:
        raise HTTPException(status_code=404, detail=f"User(s) not found: {missing}")
    return users


@router.post("/{event_id}/users")
def attach_event_users(
    event_id: int,
    payload: EventUsersRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Attach one or many users; users already attending are left alone."""
    e = get_event_or_404(db, event_id)
    change = attach_users(db, e, _load_users(db, payload.ids()))
    stats = change.as_attach_stats()

    log_activity(
        db=db,
        actor=current_user,
        action="attached_users",
        model_type="Event",
        model_id=e.id,
        new_values={"user_ids": payload.ids(), **stats},
        request=request,
    )
    db.commit()
    return {"message": f"{change.changed} user(s) attached", "stats": stats}


@router.delete("/{event_id}/users")
def detach_event_users(
    event_id: int,
    payload: EventUsersRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    change = detach_users(db, e, _load_users(db, payload.ids()))
    stats = change.as_detach_stats()

    log_activity(
        db=db,
        actor=current_user,
        action="detached_users",
        model_type="Event",
        model_id=e.id,
        old_values={"user_ids": payload.ids()},
        new_values=stats,
        request=request,
    )
    db.commit()
    return {"message": f"{change.changed} user(s) detached", "stats": stats}


@router.get("/{event_id}/users")
def list_event_users(
    event_id: int,
    search: str | None = Query(default=None),
    sort: str | None = Query(default="created_at"),
    direction: str | None = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=15, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    query = (
        db.query(User)
        .join(event_user, event_user.c.user_id == User.id)
        .filter(event_user.c.event_id == e.id, User.deleted_at.is_(None))
    )
    query = apply_search(query, search, [User.first_name, User.last_name, User.email])
    query = apply_sort(query, ATTENDEE_SORTABLE, sort, direction)
    return paginate(query, user_to_out, limit=limit, offset=offset, include_pagination=include_pagination)


@router.get("/{event_id}/export/csv/attendees")
def export_event_attendees(
    event_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    e = get_event_or_404(db, event_id)
    attendees = sorted((u for u in e.users if u.deleted_at is None), key=lambda u: u.id)
    log_activity(
        db=db,
        actor=current_user,
        action="exported",
        model_type="Event",
        model_id=e.id,
        new_values={"action": "attendees_csv_export", "count": len(attendees)},
        request=request,
    )
    db.commit()
    filename = f"event_{e.id}_attendees.csv"
    return Response(
        content=event_attendees_csv(e, attendees),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
