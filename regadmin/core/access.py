from fastapi import HTTPException

from regadmin.models.user import User


def assert_can_view_user(actor: User, target: User):
    if actor.id != target.id and not actor.is_admin:
        raise HTTPException(status_code=403, detail="You can only view your own profile")


def assert_can_update_user(actor: User, target: User):
    if actor.id != target.id and not actor.is_admin:
        raise HTTPException(status_code=403, detail="You can only update your own profile")


def assert_can_delete_user(actor: User, target: User):
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can delete users")
    if actor.id == target.id:
        raise HTTPException(status_code=403, detail="You cannot delete your own account")


def assert_can_delete_admin(actor: User, target: User):
    if not actor.is_super_admin:
        raise HTTPException(status_code=403, detail="Only super admins can delete admins")
    if actor.id == target.id:
        raise HTTPException(status_code=403, detail="You cannot delete your own account")
