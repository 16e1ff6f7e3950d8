from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.db.session import get_db
from regadmin.models.user import User


def find_active_user(db: Session, email: str) -> User | None:
    return (
        db.query(User)
        .filter(func.lower(User.email) == email.strip().lower(), User.deleted_at.is_(None))
        .order_by(User.id)
        .first()
    )


def get_current_user(
    x_user_email: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    Dev auth: the X-User-Email header names the acting account.
    Imported registrants share the table with admins, so the match is
    case-insensitive and skips soft-deleted rows.
    """
    if not x_user_email or not x_user_email.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Email header",
        )

    user = find_active_user(db, x_user_email)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown or inactive account")
    return user
