from fastapi.testclient import TestClient

from regadmin.main import app
from regadmin.models.activity_log import ActivityLog
from tests.helpers import ADMIN_EMAIL, auth, create_admin, create_event, create_user


def test_create_event(db_session):
    """Admins create events; registrants cannot"""
    admin = create_admin(db_session)
    create_user(db_session, email="jane@x.com")
    client = TestClient(app)
    payload = {"name": "Conference", "location": "Manila", "start_date": "2024-11-05T08:00:00", "end_date": "2024-11-07T17:00:00"}

    r = client.post("/events", json=payload, headers=auth("jane@x.com"))
    assert r.status_code == 403

    r = client.post("/events", json=payload, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 201
    data = r.json()
    assert data["status"] == "upcoming"
    assert data["created_by_user_id"] == admin.id
    assert data["users_count"] == 0


def test_create_event_rejects_reversed_dates(db_session):
    """end_date before start_date is a validation error"""
    create_admin(db_session)
    client = TestClient(app)
    r = client.post(
        "/events",
        json={"name": "Backwards", "start_date": "2024-11-07T00:00:00", "end_date": "2024-11-05T00:00:00"},
        headers=auth(ADMIN_EMAIL),
    )
    assert r.status_code == 422


def test_list_events_with_counts_and_filters(db_session):
    """Listing shows attendee counts and filters by status and search"""
    create_admin(db_session)
    first = create_event(db_session, name="Day 1", location="Manila")
    create_event(db_session, name="Day 2", location="Cebu", status="completed")
    jane = create_user(db_session)
    jane.events.append(first)
    db_session.commit()

    client = TestClient(app)
    r = client.get("/events?sort=id&direction=asc", headers=auth(ADMIN_EMAIL))
    assert [(e["name"], e["users_count"]) for e in r.json()] == [("Day 1", 1), ("Day 2", 0)]

    r = client.get("/events?status=completed", headers=auth(ADMIN_EMAIL))
    assert [e["name"] for e in r.json()] == ["Day 2"]

    r = client.get("/events?search=manila", headers=auth(ADMIN_EMAIL))
    assert [e["name"] for e in r.json()] == ["Day 1"]


def test_get_event_attended_count(db_session):
    """attended_count counts attendees whose attendance flag is set"""
    create_admin(db_session)
    event = create_event(db_session)
    present = create_user(db_session, first_name="Here", attendance=True)
    absent = create_user(db_session, first_name="Away")
    event.users.extend([present, absent])
    db_session.commit()

    client = TestClient(app)
    r = client.get(f"/events/{event.id}", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert r.json()["users_count"] == 2
    assert r.json()["attended_count"] == 1


def test_update_event_and_status(db_session):
    """Edits and status changes are both logged"""
    create_admin(db_session)
    event = create_event(db_session)
    client = TestClient(app)

    r = client.patch(f"/events/{event.id}", json={"location": "Cebu"}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert r.json()["location"] == "Cebu"

    r = client.patch(f"/events/{event.id}/status", json={"status": "ongoing"}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert r.json()["status"] == "ongoing"

    r = client.patch(f"/events/{event.id}/status", json={"status": "postponed"}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 422

    log = db_session.query(ActivityLog).filter(ActivityLog.action == "status_changed").one()
    assert log.old_values == {"status": "upcoming"}
    assert log.new_values == {"status": "ongoing"}


def test_attach_and_detach_users(db_session):
    """Attaching is idempotent and reports what actually changed"""
    create_admin(db_session)
    event = create_event(db_session)
    a = create_user(db_session, first_name="A")
    b = create_user(db_session, first_name="B")
    client = TestClient(app)

    r = client.post(f"/events/{event.id}/users", json={"user_id": a.id}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert r.json()["stats"]["newly_attached"] == 1

    r = client.post(f"/events/{event.id}/users", json={"user_ids": [a.id, b.id]}, headers=auth(ADMIN_EMAIL))
    assert r.json()["stats"] == {
        "total_attempted": 2,
        "newly_attached": 1,
        "already_attached": 1,
        "total_attendees": 2,
    }

    r = client.request("DELETE", f"/events/{event.id}/users", json={"user_ids": [a.id]}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert r.json()["stats"]["actually_detached"] == 1
    assert r.json()["stats"]["total_attendees"] == 1

    r = client.get(f"/events/{event.id}/users", headers=auth(ADMIN_EMAIL))
    assert [u["first_name"] for u in r.json()] == ["B"]


def test_attach_unknown_user(db_session):
    """Unknown user ids fail the whole request"""
    create_admin(db_session)
    event = create_event(db_session)
    client = TestClient(app)
    r = client.post(f"/events/{event.id}/users", json={"user_ids": [404]}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 404

    r = client.post(f"/events/{event.id}/users", json={}, headers=auth(ADMIN_EMAIL))
    assert r.status_code == 422


def test_export_event_attendees(db_session):
    """Attendee CSV with an event header block"""
    create_admin(db_session)
    event = create_event(db_session, name="Day 1")
    jane = create_user(db_session, email="jane@x.com")
    jane.events.append(event)
    db_session.commit()

    client = TestClient(app)
    r = client.get(f"/events/{event.id}/export/csv/attendees", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    assert f'filename="event_{event.id}_attendees.csv"' in r.headers["content-disposition"]
    assert "Total Attendees,1" in r.text
    assert "jane@x.com" in r.text


def test_delete_event(db_session):
    """Deleted events disappear from reads"""
    create_admin(db_session)
    event = create_event(db_session)
    client = TestClient(app)
    r = client.delete(f"/events/{event.id}", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 204
    r = client.get(f"/events/{event.id}", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 404
