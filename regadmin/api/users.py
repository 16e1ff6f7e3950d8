from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.core.access import assert_can_delete_user, assert_can_update_user, assert_can_view_user
from regadmin.core.activity import log_activity, snapshot
from regadmin.core.filtering import apply_search, apply_sort
from regadmin.core.rbac import require_admin
from regadmin.core.security import get_current_user
from regadmin.db.session import get_db
from regadmin.models.associations import event_user
from regadmin.models.group import Group
from regadmin.models.sphere import Sphere
from regadmin.models.user import FLAG_FIELDS, User
from regadmin.schemas.pagination import paginate
from regadmin.schemas.sphere import SphereOut
from regadmin.schemas.user import UserCreate, UserEventOut, UserOut, UserUpdate
from regadmin.services.exports import user_info_csv, users_with_event_count_csv

router = APIRouter(prefix="/users", tags=["users"])

SORTABLE = {
    "id": User.id,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "email": User.email,
    "created_at": User.created_at,
}

# Columns recorded in the activity log on create/update/delete
LOGGED_FIELDS = (
    "first_name",
    "last_name",
    "middle_initial",
    "title",
    "email",
    "mobile_number",
    "home_address",
    "church_name",
    "church_address",
    "working_or_student",
    "vocation_work_sphere",
    "mode_of_payment",
    "notes",
    "reference_number",
    "age_range",
    "group_id",
) + FLAG_FIELDS


def to_out(u: User, event_ids: set[int] | None = None, event_id: int | None = None) -> UserOut:
    return UserOut(
        id=u.id,
        first_name=u.first_name,
        last_name=u.last_name,
        middle_initial=u.middle_initial,
        title=u.title,
        email=u.email,
        role=u.role,
        mobile_number=u.mobile_number,
        home_address=u.home_address,
        church_name=u.church_name,
        church_address=u.church_address,
        working_or_student=u.working_or_student,
        vocation_work_sphere=u.vocation_work_sphere,
        mode_of_payment=u.mode_of_payment,
        proof_of_payment_url=u.proof_of_payment_url,
        notes=u.notes,
        reference_number=u.reference_number,
        age_range=u.age_range,
        group_id=u.group_id,
        group_name=u.group.name if u.group else None,
        reconciled=u.reconciled,
        finance_checked=u.finance_checked,
        email_confirmed=u.email_confirmed,
        attendance=u.attendance,
        id_issued=u.id_issued,
        book_given=u.book_given,
        source_sheet=u.source_sheet,
        source_row=u.source_row,
        spheres=[SphereOut(id=s.id, name=s.name, slug=s.slug) for s in u.spheres],
        created_at=u.created_at,
        updated_at=u.updated_at,
        is_event_attendee=(u.id in event_ids) if event_id is not None else None,
    )


def get_user_or_404(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u or u.deleted_at is not None:
        raise HTTPException(status_code=404, detail="User not found")
    return u


def load_spheres(db: Session, sphere_ids: list[int]) -> list[Sphere]:
    spheres = db.query(Sphere).filter(Sphere.id.in_(sphere_ids)).all() if sphere_ids else []
    missing = sorted(set(sphere_ids) - {s.id for s in spheres})
    if missing:
        raise HTTPException(status_code=422, detail=f"Unknown sphere id(s): {missing}")
    return spheres


def check_email_free(db: Session, email: str | None, exclude_id: int | None = None):
    if not email:
        return
    q = db.query(User).filter(func.lower(User.email) == email.lower(), User.deleted_at.is_(None))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Email already in use")


def check_group(db: Session, group_id: int | None):
    if group_id is not None and db.get(Group, group_id) is None:
        raise HTTPException(status_code=422, detail="Group not found")


@router.get("")
def list_users(
    search: str | None = Query(default=None, description="Search first name, last name or email"),
    sphere_id: int | None = Query(default=None, description="Filter by sphere (0 = users without spheres)"),
    no_sphere: bool = Query(default=False, description="Only users without spheres"),
    event_id: int | None = Query(default=None, description="Flag attendees of this event"),
    sort: str | None = Query(default="created_at", description="id, first_name, last_name, email, created_at"),
    direction: str | None = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=15, ge=1, le=100, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    List registrants (role "user").

    Use ?include_pagination=true to get pagination metadata.
    """
    query = db.query(User).filter(User.role == "user", User.deleted_at.is_(None))
    query = apply_search(query, search, [User.first_name, User.last_name, User.email])

    if no_sphere or sphere_id == 0:
        query = query.filter(~User.spheres.any())
    elif sphere_id is not None:
        query = query.filter(User.spheres.any(Sphere.id == sphere_id))

    event_ids: set[int] = set()
    if event_id is not None:
        rows = db.query(event_user.c.user_id).filter(event_user.c.event_id == event_id).all()
        event_ids = {r[0] for r in rows}

    query = apply_sort(query, SORTABLE, sort, direction)
    return paginate(
        query,
        lambda u: to_out(u, event_ids, event_id),
        limit=limit,
        offset=offset,
        include_pagination=include_pagination,
    )


@router.get("/export/csv/with-event-count")
def export_users_with_event_count(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    rows = (
        db.query(User, func.count(event_user.c.event_id))
        .outerjoin(event_user, event_user.c.user_id == User.id)
        .filter(User.role == "user", User.deleted_at.is_(None))
        .group_by(User.id)
        .order_by(User.id)
        .all()
    )
    log_activity(
        db=db,
        actor=current_user,
        action="exported",
        model_type="User",
        model_id=None,
        new_values={"action": "users_csv_export", "count": len(rows)},
        request=request,
    )
    db.commit()
    filename = f"users_with_event_count_{datetime.utcnow():%Y-%m-%d_%H%M%S}.csv"
    return Response(
        content=users_with_event_count_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = get_user_or_404(db, user_id)
    assert_can_view_user(current_user, u)
    return to_out(u)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    check_email_free(db, payload.email)
    check_group(db, payload.group_id)

    data = payload.model_dump(exclude={"sphere_ids"}, exclude_none=True)
    u = User(role="user", **data)
    u.spheres = load_spheres(db, payload.sphere_ids)

    db.add(u)
    db.flush()  # ensures u.id exists for the activity log

    log_activity(
        db=db,
        actor=current_user,
        action="created",
        model_type="User",
        model_id=u.id,
        new_values=snapshot(u, LOGGED_FIELDS),
        request=request,
    )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = get_user_or_404(db, user_id)
    assert_can_update_user(current_user, u)

    changes = payload.model_dump(exclude_unset=True, exclude={"sphere_ids"})
    if "email" in changes:
        check_email_free(db, changes["email"], exclude_id=u.id)
    if "group_id" in changes:
        check_group(db, changes["group_id"])

    before = snapshot(u, LOGGED_FIELDS)
    before["sphere_ids"] = [s.id for s in u.spheres]

    for name, value in changes.items():
        setattr(u, name, value)
    if payload.sphere_ids is not None:
        u.spheres = load_spheres(db, payload.sphere_ids)
    db.flush()

    after = snapshot(u, LOGGED_FIELDS)
    after["sphere_ids"] = [s.id for s in u.spheres]

    log_activity(
        db=db,
        actor=current_user,
        action="updated",
        model_type="User",
        model_id=u.id,
        old_values=before,
        new_values=after,
        request=request,
    )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = get_user_or_404(db, user_id)
    assert_can_delete_user(current_user, u)

    u.deleted_at = datetime.utcnow()
    log_activity(
        db=db,
        actor=current_user,
        action="deleted",
        model_type="User",
        model_id=u.id,
        old_values=snapshot(u, LOGGED_FIELDS),
        request=request,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/events", response_model=list[UserEventOut])
def get_user_events(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = get_user_or_404(db, user_id)
    assert_can_view_user(current_user, u)
    events = sorted((e for e in u.events if e.deleted_at is None), key=lambda e: e.id)
    return [
        UserEventOut(
            id=e.id,
            name=e.name,
            status=e.status,
            location=e.location,
            start_date=e.start_date,
            end_date=e.end_date,
        )
        for e in events
    ]


@router.get("/{user_id}/export/csv")
def export_user_info(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = get_user_or_404(db, user_id)
    assert_can_view_user(current_user, u)
    log_activity(
        db=db,
        actor=current_user,
        action="exported",
        model_type="User",
        model_id=u.id,
        new_values={"action": "user_info_csv_export"},
        request=request,
    )
    db.commit()
    filename = f"user_{u.id}_info.csv"
    return Response(
        content=user_info_csv(u),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
