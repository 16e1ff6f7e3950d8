from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.core.access import assert_can_delete_admin
from regadmin.core.activity import log_activity, snapshot
from regadmin.core.filtering import apply_search
from regadmin.core.passwords import hash_password
from regadmin.core.rbac import require_admin, require_super_admin
from regadmin.db.session import get_db
from regadmin.models.user import ADMIN_ROLES, User
from regadmin.schemas.admin import AdminCreate, AdminOut, AdminUpdate
from regadmin.schemas.pagination import paginate

router = APIRouter(prefix="/admins", tags=["admins"])

LOGGED_FIELDS = ("first_name", "last_name", "email", "role", "is_active")


def to_out(u: User) -> AdminOut:
    return AdminOut(
        id=u.id,
        first_name=u.first_name,
        last_name=u.last_name,
        email=u.email,
        role=u.role,
        is_active=u.is_active,
        created_at=u.created_at,
    )


def get_admin_or_404(db: Session, admin_id: int) -> User:
    u = db.get(User, admin_id)
    if not u or u.deleted_at is not None or u.role not in ADMIN_ROLES:
        raise HTTPException(status_code=404, detail="Admin not found")
    return u


def check_email_free(db: Session, email: str, exclude_id: int | None = None):
    q = db.query(User).filter(func.lower(User.email) == email.lower(), User.deleted_at.is_(None))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Email already in use")


@router.get("")
def list_admins(
    search: str | None = Query(default=None, description="Search by name or email"),
    limit: int = Query(default=15, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    query = db.query(User).filter(User.role.in_(ADMIN_ROLES), User.deleted_at.is_(None))
    query = apply_search(query, search, [User.first_name, User.last_name, User.email])
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, to_out, limit=limit, offset=offset, include_pagination=include_pagination)


@router.get("/{admin_id}", response_model=AdminOut)
def get_admin(
    admin_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    return to_out(get_admin_or_404(db, admin_id))


@router.post("", response_model=AdminOut, status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: AdminCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin),
):
    check_email_free(db, payload.email)
    u = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        role=payload.role,
        password_hash=hash_password(payload.password),
        is_active=True,
    )
    db.add(u)
    db.flush()

    log_activity(
        db=db,
        actor=current_user,
        action="created",
        model_type="Admin",
        model_id=u.id,
        new_values=snapshot(u, LOGGED_FIELDS),
        request=request,
    )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.patch("/{admin_id}", response_model=AdminOut)
def update_admin(
    admin_id: int,
    payload: AdminUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin),
):
    u = get_admin_or_404(db, admin_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        check_email_free(db, changes["email"], exclude_id=u.id)
    if u.id == current_user.id and changes.get("role", u.role) != u.role:
        raise HTTPException(status_code=409, detail="You cannot change your own role")

    before = snapshot(u, LOGGED_FIELDS)
    password = changes.pop("password", None)
    for name, value in changes.items():
        if value is not None:
            setattr(u, name, value)
    if password:
        u.password_hash = hash_password(password)

    after = snapshot(u, LOGGED_FIELDS)
    log_activity(
        db=db,
        actor=current_user,
        action="updated",
        model_type="Admin",
        model_id=u.id,
        old_values=before,
        new_values={**after, "password_changed": bool(password)},
        request=request,
    )

    db.commit()
    db.refresh(u)
    return to_out(u)


@router.delete("/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_admin(
    admin_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    u = get_admin_or_404(db, admin_id)
    assert_can_delete_admin(current_user, u)

    u.deleted_at = datetime.utcnow()
    u.is_active = False
    log_activity(
        db=db,
        actor=current_user,
        action="deleted",
        model_type="Admin",
        model_id=u.id,
        old_values=snapshot(u, LOGGED_FIELDS),
        request=request,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
