from fastapi.testclient import TestClient

from regadmin.main import app
from tests.helpers import ADMIN_EMAIL, auth, create_admin, create_event, create_user, seed_spheres


def test_list_spheres(db_session):
    """Any signed-in user can read the sphere list"""
    create_user(db_session, email="jane@x.com")
    seed_spheres(db_session)
    client = TestClient(app)
    r = client.get("/spheres", headers=auth("jane@x.com"))
    assert r.status_code == 200
    assert r.json()[0] == {"id": 1, "name": "Church/Ministry", "slug": "churchministry"}


def test_event_sphere_stats(db_session):
    """Attending registrants are counted once, under their primary sphere"""
    admin = create_admin(db_session)
    spheres = seed_spheres(db_session)
    event = create_event(db_session)

    # Church/Ministry yields to any other sphere
    both = create_user(db_session, first_name="Both", attendance=True)
    both.spheres.extend([spheres["Church/Ministry"], spheres["Business/Economics"]])
    church = create_user(db_session, first_name="Church", attendance=True)
    church.spheres.append(spheres["Church/Ministry"])
    none = create_user(db_session, first_name="None", attendance=True)
    absent = create_user(db_session, first_name="Absent")
    absent.spheres.append(spheres["Education"])
    event.users.extend([both, church, none, absent, admin])
    db_session.commit()

    client = TestClient(app)
    r = client.get(f"/stats/events/{event.id}/sphere-stats", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 200
    data = r.json()
    assert data["total_users"] == 3
    assert [(s["sphere_name"], s["user_count"], s["percentage"]) for s in data["sphere_stats"]] == [
        ("Business/Economics", 1, 33.33),
        ("Church/Ministry", 1, 33.33),
        ("Others (No Sphere)", 1, 33.33),
    ]
    assert data["summary"]["total_spheres_represented"] == 2
    assert data["summary"]["users_without_spheres"] == 1
    assert data["summary"]["most_popular_sphere"]["sphere_name"] == "Business/Economics"


def test_event_sphere_stats_empty_and_missing(db_session):
    """No attendees gives empty stats; unknown events are 404"""
    create_admin(db_session)
    event = create_event(db_session)
    client = TestClient(app)

    r = client.get(f"/stats/events/{event.id}/sphere-stats", headers=auth(ADMIN_EMAIL))
    assert r.json()["total_users"] == 0
    assert r.json()["sphere_stats"] == []
    assert r.json()["summary"]["most_popular_sphere"] is None

    r = client.get("/stats/events/999/sphere-stats", headers=auth(ADMIN_EMAIL))
    assert r.status_code == 404
