from fastapi.testclient import TestClient

from regadmin.main import app
from tests.helpers import ADMIN_EMAIL, auth, create_admin, create_user


def make_changes(client):
    jane = client.post("/users", json={"first_name": "Jane", "last_name": "Doe"}, headers=auth(ADMIN_EMAIL)).json()
    client.patch(f"/users/{jane['id']}", json={"notes": "VIP"}, headers=auth(ADMIN_EMAIL))
    client.post("/events", json={"name": "Day 1"}, headers=auth(ADMIN_EMAIL))
    return jane


def test_activity_logs_newest_first(db_session):
    """Every change is listed newest first with the acting admin's email"""
    admin = create_admin(db_session)
    client = TestClient(app)
    make_changes(client)

    r = client.get("/activity-logs", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    logs = r.json()
    assert [(l["model_type"], l["action"]) for l in logs] == [
        ("Event", "created"),
        ("User", "updated"),
        ("User", "created"),
    ]
    assert {l["admin_id"] for l in logs} == {admin.id}
    assert {l["admin_email"] for l in logs} == {ADMIN_EMAIL}


def test_activity_logs_filters(db_session):
    """Filter by model, model id and action"""
    create_admin(db_session)
    client = TestClient(app)
    jane = make_changes(client)

    r = client.get("/activity-logs?model_type=User", headers=auth(ADMIN_EMAIL))
    assert len(r.json()) == 2

    r = client.get(f"/activity-logs?model_type=User&model_id={jane['id']}&action=updated", headers=auth(ADMIN_EMAIL))
    logs = r.json()
    assert len(logs) == 1
    assert logs[0]["old_values"]["notes"] is None
    assert logs[0]["new_values"]["notes"] == "VIP"

    r = client.get("/activity-logs?limit=1&include_pagination=true", headers=auth(ADMIN_EMAIL))
    assert r.json()["pagination"]["total"] == 3
    assert r.json()["pagination"]["has_more"] is True


def test_activity_logs_admin_only(db_session):
    """Registrants cannot read the activity log"""
    create_user(db_session, email="jane@x.com")
    client = TestClient(app)
    r = client.get("/activity-logs", headers=auth("jane@x.com"))
    assert r.status_code == 403
