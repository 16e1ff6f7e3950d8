from fastapi.testclient import TestClient

from regadmin.core.passwords import verify_password
from regadmin.main import app
from regadmin.models.user import User
from tests.helpers import ADMIN_EMAIL, SUPER_EMAIL, auth, create_admin, create_super_admin, create_user


def test_list_admins(db_session):
    """Admins see every admin account, registrants excluded"""
    create_super_admin(db_session)
    create_admin(db_session)
    create_user(db_session, email="jane@x.com")

    client = TestClient(app)
    r = client.get("/admins", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert sorted(a["email"] for a in r.json()) == [ADMIN_EMAIL, SUPER_EMAIL]

    r = client.get("/admins", headers=auth("jane@x.com"))
    assert r.status_code == 403


def test_create_admin_requires_super_admin(db_session):
    """Only super admins create admins; passwords are stored hashed"""
    create_super_admin(db_session)
    create_admin(db_session)
    client = TestClient(app)
    payload = {"first_name": "New", "last_name": "Admin", "email": "new@local.test", "password": "password123"}

    r = client.post("/admins", json=payload, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 403

    r = client.post("/admins", json=payload, headers=auth(SUPER_EMAIL))
    assert r.status_code == 201
    assert r.json()["role"] == "admin"
    created = db_session.get(User, r.json()["id"])
    assert created.password_hash != "password123"
    assert verify_password("password123", created.password_hash)

    r = client.post("/admins", json=payload, headers=auth(SUPER_EMAIL))
    assert r.status_code == 409


def test_create_admin_short_password(db_session):
    """Passwords shorter than eight characters are rejected"""
    create_super_admin(db_session)
    client = TestClient(app)
    r = client.post(
        "/admins",
        json={"first_name": "N", "last_name": "A", "email": "n@local.test", "password": "short"},
        headers=auth(SUPER_EMAIL),
    )
    assert r.status_code == 422


def test_update_admin(db_session):
    """Super admins edit admins but cannot change their own role"""
    boss = create_super_admin(db_session)
    admin = create_admin(db_session)
    client = TestClient(app)

    r = client.patch(f"/admins/{admin.id}", json={"role": "super_admin", "password": "changed-pass"}, headers=auth(SUPER_EMAIL))
    assert r.status_code == 200
    assert r.json()["role"] == "super_admin"
    db_session.refresh(admin)
    assert verify_password("changed-pass", admin.password_hash)

    r = client.patch(f"/admins/{boss.id}", json={"role": "admin"}, headers=auth(SUPER_EMAIL))
    assert r.status_code == 409


def test_get_admin_not_found_for_registrant(db_session):
    """Registrant ids are not admins"""
    create_super_admin(db_session)
    jane = create_user(db_session)
    client = TestClient(app)
    r = client.get(f"/admins/{jane.id}", headers=auth(SUPER_EMAIL))
    assert r.status_code == 404


def test_delete_admin(db_session):
    """Only super admins delete admins, never themselves"""
    boss = create_super_admin(db_session)
    admin = create_admin(db_session)
    client = TestClient(app)

    r = client.delete(f"/admins/{boss.id}", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 403

    r = client.delete(f"/admins/{boss.id}", headers=auth(SUPER_EMAIL))
    assert r.status_code == 403

    r = client.delete(f"/admins/{admin.id}", headers=auth(SUPER_EMAIL))
    assert r.status_code == 204
    db_session.refresh(admin)
    assert admin.deleted_at is not None
    assert admin.is_active is False

    r = client.get("/admins", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 401
