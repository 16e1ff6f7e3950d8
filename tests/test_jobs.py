from datetime import datetime

import pytest

from regadmin.core.errors import ConfigurationError
from regadmin.core.passwords import verify_password
from regadmin.importing.workbook import SheetGrid
from regadmin.jobs.cleanup import cleanup_event_users, cleanup_null_users, undo_import
from regadmin.jobs.event_registrations import import_event_registrations
from regadmin.jobs.registrants import (
    add_users_to_event,
    import_age_ranges,
    reset_admin_password,
    update_working_status,
)
from regadmin.jobs.spheres import SPHERE_NAMES, attach_spheres, fix_vocation_spheres, seed_spheres
from regadmin.models.sphere import Sphere
from regadmin.models.user import User
from tests.helpers import create_admin, create_event, create_user
from tests import helpers


def grid(*rows, title="Sheet1"):
    return SheetGrid(title=title, rows=[tuple(r) for r in rows])


def live_registrants(db):
    return db.query(User).filter(User.role == "user", User.deleted_at.is_(None)).order_by(User.id).all()


# --- cleanup ---------------------------------------------------------------


def test_undo_import_soft_deletes_window(db_session):
    create_user(db_session, first_name="Old", last_name="One", created_at=datetime(2024, 1, 1))
    create_user(db_session, first_name="New", last_name="Two", created_at=datetime(2024, 3, 1, 12))
    create_user(db_session, first_name="New", last_name="Three", created_at=datetime(2024, 3, 2))

    result = undo_import(db_session, created_after=datetime(2024, 3, 1))
    assert result.deleted == 2
    assert result.permanent is False
    assert [u.first_name for u in live_registrants(db_session)] == ["Old"]
    assert db_session.query(User).count() == 3


def test_undo_import_dry_run_and_force(db_session):
    create_user(db_session, first_name="New", last_name="Two", created_at=datetime(2024, 3, 1, 12))

    preview = undo_import(db_session, created_after=datetime(2024, 3, 1), force=True, dry_run=True)
    assert preview.deleted == 1
    assert db_session.query(User).count() == 1

    undo_import(db_session, created_after=datetime(2024, 3, 1), force=True)
    assert db_session.query(User).count() == 0


def test_undo_import_requires_window_and_known_event(db_session):
    with pytest.raises(ConfigurationError):
        undo_import(db_session, created_after=None)
    with pytest.raises(ConfigurationError):
        undo_import(db_session, created_after=datetime(2024, 1, 1), event_id=42)


def test_undo_import_scoped_to_event(db_session):
    event = create_event(db_session)
    inside = create_user(db_session, first_name="In", last_name="Event", created_at=datetime(2024, 3, 2))
    create_user(db_session, first_name="Out", last_name="Side", created_at=datetime(2024, 3, 2))
    inside.events.append(event)
    db_session.commit()

    result = undo_import(db_session, created_after=datetime(2024, 3, 1), event_id=event.id)
    assert [u.first_name for u in result.targets] == ["In"]


def test_cleanup_null_users(db_session):
    create_user(db_session, first_name=None, last_name=None)
    create_user(db_session, first_name=" ", last_name="")
    create_user(db_session, first_name="Jane", last_name=None)

    result = cleanup_null_users(db_session)
    assert result.deleted == 2
    assert [u.first_name for u in live_registrants(db_session)] == ["Jane"]


def test_cleanup_null_users_trashed_only_purges(db_session):
    create_user(db_session, first_name=None, last_name=None, deleted_at=datetime(2024, 1, 1))
    create_user(db_session, first_name=None, last_name=None)

    result = cleanup_null_users(db_session, trashed_only=True)
    assert result.deleted == 1
    assert result.permanent is True
    assert db_session.query(User).count() == 1


def test_cleanup_event_users(db_session):
    day1 = create_event(db_session, name="Day 1")
    day2 = create_event(db_session, name="Day 2")
    only = create_user(db_session, first_name="Only", last_name="Here")
    both = create_user(db_session, first_name="Both", last_name="Days")
    only.events.append(day1)
    both.events.extend([day1, day2])
    db_session.commit()

    result = cleanup_event_users(db_session, day1.id)
    assert result.deleted == 1
    assert result.detached == 1
    assert [u.first_name for u in db_session.query(User).all()] == ["Both"]
    db_session.refresh(day1)
    assert day1.users == []


def test_cleanup_event_users_dry_run(db_session):
    event = create_event(db_session)
    user = create_user(db_session)
    user.events.append(event)
    db_session.commit()

    result = cleanup_event_users(db_session, event.id, dry_run=True)
    assert result.deleted == 1
    assert db_session.query(User).count() == 1


# --- spheres ----------------------------------------------------------------


def test_seed_spheres_is_idempotent(db_session):
    first = seed_spheres(db_session)
    assert first["created"] == len(SPHERE_NAMES)
    second = seed_spheres(db_session)
    assert second == {"created": 0, "updated": 0, "unchanged": len(SPHERE_NAMES)}
    assert db_session.query(Sphere).count() == len(SPHERE_NAMES)


def test_seed_spheres_dry_run(db_session):
    stats = seed_spheres(db_session, dry_run=True)
    assert stats["created"] == len(SPHERE_NAMES)
    assert db_session.query(Sphere).count() == 0


def test_attach_spheres_keeps_existing_links(db_session):
    spheres = helpers.seed_spheres(db_session)
    church = spheres["Church/Ministry"]
    education = spheres["Education"]
    with_one = create_user(db_session, first_name="A", last_name="One")
    with_one.spheres.append(church)
    db_session.commit()
    create_user(db_session, first_name="B", last_name="Two")

    result = attach_spheres(db_session, sphere_ids=[church.id, education.id])
    assert result.users == 2
    assert result.links_created == 3
    assert sorted(s.name for s in with_one.spheres) == ["Church/Ministry", "Education"]


def test_attach_spheres_without_spheres_only(db_session):
    spheres = helpers.seed_spheres(db_session)
    tagged = create_user(db_session, first_name="A", last_name="One")
    tagged.spheres.append(spheres["Government"])
    db_session.commit()
    create_user(db_session, first_name="B", last_name="Two")

    result = attach_spheres(db_session, all_spheres=True, without_spheres=True)
    assert result.users == 1
    assert result.links_created == len(SPHERE_NAMES)


def test_attach_spheres_rejects_bad_input(db_session):
    helpers.seed_spheres(db_session)
    with pytest.raises(ConfigurationError):
        attach_spheres(db_session)
    with pytest.raises(ConfigurationError):
        attach_spheres(db_session, sphere_ids=[999])
    with pytest.raises(ConfigurationError):
        attach_spheres(db_session, all_spheres=True, role="guest")


def test_fix_vocation_spheres(db_session):
    spheres = helpers.seed_spheres(db_session)
    absent = create_user(db_session, first_name="Not", last_name="There", vocation_work_sphere="Education")
    absent.spheres.append(spheres["Education"])
    present = create_user(
        db_session, first_name="Was", last_name="There", vocation_work_sphere="Education", attendance=True
    )
    present.spheres.append(spheres["Education"])
    db_session.commit()

    result = fix_vocation_spheres(db_session)
    assert result.kept == 1
    assert result.cleaned == [
        {"id": absent.id, "name": "Not There", "email": None, "vocation_work_sphere": "Education", "sphere_count": 1}
    ]
    db_session.refresh(absent)
    assert absent.spheres == []
    assert absent.vocation_work_sphere is None
    assert len(present.spheres) == 1


# --- registrants ------------------------------------------------------------


def test_update_working_status(db_session):
    create_user(db_session, first_name="A", last_name="One", age_range="25-34", working_or_student="student")
    create_user(db_session, first_name="B", last_name="Two", age_range="18-24", working_or_student="student")
    create_user(db_session, first_name="C", last_name="Three", age_range="35-44", working_or_student="working")

    result = update_working_status(db_session)
    assert result.age_ranges == {"18-24": 1, "25-34": 1, "35-44": 1}
    assert result.before == {"student": 1, "working": 1}
    assert result.updated == 1
    statuses = {u.first_name: u.working_or_student for u in live_registrants(db_session)}
    assert statuses == {"A": "working", "B": "student", "C": "working"}


def test_update_working_status_for_one_range(db_session):
    create_user(db_session, first_name="B", last_name="Two", age_range="18-24")
    result = update_working_status(db_session, age_range="18-24", dry_run=True)
    assert result.updated == 1
    assert live_registrants(db_session)[0].working_or_student is None


def test_import_age_ranges(db_session):
    create_user(db_session, first_name="Jane", last_name="Doe")
    create_user(db_session, first_name="John", last_name="Smith", age_range="25-34")
    sheet = grid(
        ["Last Name", "First Name", "Age Range"],
        ["doe", "JANE", "18-24"],
        ["Smith", "John", "25-34"],
        [None, None, None],
        ["Ghost", "Casper", "35-44"],
    )
    result = import_age_ranges(db_session, sheet)

    assert [(u["name"], u["old"], u["new"]) for u in result.updated] == [("Jane Doe", None, "18-24")]
    assert result.unchanged == 1
    assert result.skipped_empty == 1
    assert [n["row"] for n in result.not_found] == [5]
    assert live_registrants(db_session)[0].age_range == "18-24"


def test_import_age_ranges_respects_end_row(db_session):
    create_user(db_session, first_name="Jane", last_name="Doe")
    sheet = grid(["Last Name", "First Name", "Age Range"], ["Doe", "Jane", "18-24"], ["Ghost", "Casper", "35-44"])
    result = import_age_ranges(db_session, sheet, end_row=2)
    assert len(result.updated) == 1
    assert result.not_found == []


def test_add_users_to_event_by_ids_and_role(db_session):
    event = create_event(db_session)
    a = create_user(db_session, first_name="A", last_name="One")
    b = create_user(db_session, first_name="B", last_name="Two")
    create_admin(db_session)

    first = add_users_to_event(db_session, event.id, user_ids=[a.id])
    assert first.as_attach_stats() == {
        "total_attempted": 1,
        "newly_attached": 1,
        "already_attached": 0,
        "total_attendees": 1,
    }

    second = add_users_to_event(db_session, event.id, role="user")
    assert (second.changed, second.unchanged, second.total_attendees) == (1, 1, 2)

    removed = add_users_to_event(db_session, event.id, user_ids=[b.id], detach=True)
    assert removed.as_detach_stats()["actually_detached"] == 1
    db_session.refresh(event)
    assert [u.id for u in event.users] == [a.id]


def test_add_users_to_event_requires_selection(db_session):
    event = create_event(db_session)
    with pytest.raises(ConfigurationError):
        add_users_to_event(db_session, event.id)
    with pytest.raises(ConfigurationError):
        add_users_to_event(db_session, event.id, role="guest")
    with pytest.raises(ConfigurationError):
        add_users_to_event(db_session, 999, all_users=True)


def test_reset_admin_password(db_session):
    create_admin(db_session, email="admin@local.test")
    admin = reset_admin_password(db_session, "ADMIN@local.test ", "new-password")
    assert verify_password("new-password", admin.password_hash)


def test_reset_admin_password_suggests_similar_emails(db_session):
    create_admin(db_session, email="admin@local.test")
    with pytest.raises(ConfigurationError) as exc:
        reset_admin_password(db_session, "admin@example.com", "new-password")
    assert exc.value.hint == ["admin@local.test"]


def test_reset_admin_password_rejects_short_password(db_session):
    create_admin(db_session, email="admin@local.test")
    with pytest.raises(ConfigurationError):
        reset_admin_password(db_session, "admin@local.test", "short")


# --- day-by-day event registrations ----------------------------------------


def test_import_event_registrations(db_session):
    helpers.seed_spheres(db_session)
    day1 = create_event(db_session, name="Day 1")
    day2 = create_event(db_session, name="Day 2")
    create_user(db_session, first_name="Jane", last_name="Doe")
    sheet = grid(
        ["Last Name", "First Name", "Email", "Contact Number", "Areas", "Day 1", "Day 2", "Day 3"],
        ["Doe", "Jane", None, None, "Economics; Spiritual", 1, 1, None],
        ["Smith", "John", "john@x.com", "0917", "Social", 0, 1, 1],
        [None, None, None, None, None, None, None, None],
    )
    result = import_event_registrations(
        db_session, sheet, day_event_ids={"day 1": day1.id, "day 2": day2.id, "day 3": None}
    )

    assert (result.rows, result.created, result.existing) == (2, 1, 1)
    assert result.attachments == {"day 1": 1, "day 2": 2, "day 3": 0}
    assert result.preview[1]["days"] == ["day 2", "day 3"]

    jane, john = live_registrants(db_session)
    assert sorted(s.name for s in jane.spheres) == ["Business/Economics", "Church/Ministry"]
    assert john.email == "john@x.com"
    assert [s.name for s in john.spheres] == ["Family/Community"]
    assert sorted(e.name for e in jane.events) == ["Day 1", "Day 2"]


def test_import_event_registrations_needs_an_event(db_session):
    sheet = grid(["Last Name", "First Name"], ["Doe", "Jane"])
    with pytest.raises(ConfigurationError):
        import_event_registrations(db_session, sheet, day_event_ids={"day 1": None})
    with pytest.raises(ConfigurationError):
        import_event_registrations(db_session, sheet, day_event_ids={"day 1": 999})
