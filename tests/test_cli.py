from datetime import datetime

import pytest

import regadmin.cli as cli
from regadmin.models.sphere import Sphere
from regadmin.models.user import User
from tests.helpers import create_admin, create_event, create_user, write_workbook


@pytest.fixture()
def run(db_session, monkeypatch, capsys):
    """Invoke the CLI against the test session; returns (exit code, stdout)."""
    monkeypatch.setattr(cli, "SessionLocal", lambda: db_session)
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)

    def _run(*argv):
        code = cli.main(list(argv))
        return code, capsys.readouterr().out

    return _run


def answers(monkeypatch, *replies):
    it = iter(replies)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(it))


def summary_value(out: str, label: str) -> str:
    for line in out.splitlines():
        if line.strip().startswith(label) and ":" in line:
            return line.rsplit(":", 1)[1].strip()
    raise AssertionError(f"{label!r} not in output")


@pytest.fixture()
def registration_sheet(tmp_path):
    return write_workbook(
        tmp_path / "reg.xlsx",
        [
            ["FINAL REGISTRATION"],
            ["First Name", "Last Name", "Email Address"],
            ["Jane", "Doe", "jane@x.com"],
            ["John", "Smith", None],
        ],
        title="REG",
    )


def registrant_names(db):
    return [u.full_name for u in db.query(User).filter(User.role == "user", User.deleted_at.is_(None)).order_by(User.id)]


def test_import_registrations(run, db_session, registration_sheet):
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "REG")
    assert code == 0
    assert "Import Summary" in out
    assert summary_value(out, "Inserted") == "2"
    assert summary_value(out, "Rows") == "3-4"
    assert "✓ Done." in out
    assert registrant_names(db_session) == ["Jane Doe", "John Smith"]


def test_import_registrations_dry_run(run, db_session, registration_sheet):
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "REG", "--dry-run")
    assert code == 0
    assert "[DRY RUN MODE - No changes will be made]" in out
    assert summary_value(out, "Inserted") == "2"
    assert "✓ Dry-run complete. No changes were saved." in out
    assert registrant_names(db_session) == []


def test_import_registrations_unknown_sheet(run, registration_sheet):
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "Nope")
    assert code == 1
    assert "❌ Sheet 'Nope' not found." in out
    assert "Available sheets:" in out
    assert "   - REG" in out


def test_import_registrations_missing_file(run, storage_dirs):
    code, out = run("import-registrations", "missing.xlsx")
    assert code == 1
    assert "File not found" in out


def test_import_registrations_bad_mapping(run, registration_sheet):
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "REG", "--map", "C=nickname")
    assert code == 1
    assert "Unknown field 'nickname'" in out


def test_import_registrations_interactive(run, db_session, registration_sheet, monkeypatch):
    answers(monkeypatch, "", "", "-", "y")
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "REG", "--interactive")
    assert code == 0
    assert "Column mapping" in out
    emails = [u.email for u in db_session.query(User).order_by(User.id)]
    assert emails == [None, None]


def test_import_registrations_interactive_cancel(run, db_session, registration_sheet, monkeypatch):
    answers(monkeypatch, "", "", "", "n")
    code, out = run("import-registrations", str(registration_sheet), "--sheet", "REG", "--interactive")
    assert code == 0
    assert "Cancelled." in out
    assert registrant_names(db_session) == []


def test_find_missing_with_export(run, db_session, tmp_path, storage_dirs):
    create_user(db_session, first_name="Jane", last_name="Doe")
    path = write_workbook(tmp_path / "names.xlsx", [["Last Name", "First Name"], ["Doe", "Jane"], ["Person", "New"]])

    code, out = run("find-missing", str(path), "--export", "missing.txt")
    assert code == 0
    assert summary_value(out, "Missing") == "1"
    report = (storage_dirs / "exports" / "missing.txt").read_text(encoding="utf-8")
    assert "Total Missing: 1" in report
    assert "New Person" in report


def test_compare_attendance_output(run, db_session, tmp_path):
    create_user(db_session, first_name="Jane", last_name="Doe", attendance=True)
    path = write_workbook(
        tmp_path / "att.xlsx",
        [["Last Name", "First Name", "Attendance"], ["Doe", "Jane", 1], ["Doe", "Jane", 1], ["Person", "New", 1]],
    )
    code, out = run("compare-attendance", str(path), "--attendance-col", "c")
    assert code == 0
    assert "Duplicate names in sheet" in out
    assert "Present in sheet, not in database" in out
    assert summary_value(out, "Difference") == "2"
    assert "Difference explained by:" in out
    assert "1 duplicate rows in sheet" in out


def test_analyze_attendance_output(run, tmp_path):
    path = write_workbook(
        tmp_path / "att.xlsx",
        [["TITLE"], ["Last Name", "First Name", "Attendance"], ["Doe", "Jane", 1], [None, None, 1]],
    )
    code, out = run("analyze-attendance", str(path), "--expected-count", "1")
    assert code == 0
    assert summary_value(out, "Attendance = 1 (N)") == "2"
    assert summary_value(out, "Missing names (E)") == "1"
    assert summary_value(out, "Gap to expected") == "1"


def test_undo_import_confirms_before_deleting(run, db_session, monkeypatch):
    create_user(db_session, created_at=datetime(2024, 3, 2))
    answers(monkeypatch, "n")
    code, out = run("undo-import", "--created-after", "2024-03-01")
    assert code == 0
    assert "Would be soft deleted: 1" in out
    assert "Cancelled." in out
    assert registrant_names(db_session) == ["Jane Doe"]

    code, out = run("undo-import", "--created-after", "2024-03-01", "--yes")
    assert code == 0
    assert "Registrants soft deleted: 1" in out
    assert registrant_names(db_session) == []


def test_undo_import_requires_created_after(run):
    code, out = run("undo-import", "--yes")
    assert code == 1
    assert "--created-after is required" in out


def test_undo_import_rejects_bad_timestamp(run):
    code, out = run("undo-import", "--created-after", "yesterday")
    assert code == 1
    assert "Invalid date/time 'yesterday'" in out


def test_cleanup_null_users_nothing_to_do(run):
    code, out = run("cleanup-null-users")
    assert code == 0
    assert "Nothing to do." in out


def test_seed_spheres_command(run, db_session):
    code, out = run("seed-spheres")
    assert code == 0
    assert summary_value(out, "Created") == "7"
    assert db_session.query(Sphere).count() == 7


def test_event_add_users_unknown_event(run):
    code, out = run("event-add-users", "99", "--all")
    assert code == 1
    assert "Event 99 not found" in out


def test_reset_admin_password_prompts(run, db_session, monkeypatch):
    create_admin(db_session)
    replies = iter(["secret-one", "secret-two"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(replies))
    code, out = run("reset-admin-password", "admin@local.test")
    assert code == 1
    assert "Passwords do not match" in out


def test_reset_admin_password_unknown_email_lists_similar(run, db_session):
    create_admin(db_session)
    code, out = run("reset-admin-password", "admin@other.test", "--password", "long-enough")
    assert code == 1
    assert "No admin found with email 'admin@other.test'" in out
    assert "   - admin@local.test" in out


def test_list_without_options_prints_usage(run):
    code, out = run("list")
    assert code == 0
    assert "--events" in out


def test_list_events_and_users_by_role(run, db_session):
    event = create_event(db_session, name="Day 1", location="Main Hall")
    jane = create_user(db_session, first_name="Jane", last_name="Doe", email="jane@x.com")
    create_admin(db_session, email="boss@x.com")
    jane.events.append(event)
    db_session.commit()

    code, out = run("list", "--events", "--users", "--role", "user")
    assert code == 0
    assert "Day 1" in out
    assert "Main Hall" in out
    assert "Users with role 'user'" in out
    assert "jane@x.com" in out
    assert "boss@x.com" not in out


def test_list_event_users(run, db_session):
    event = create_event(db_session, name="Day 2")
    jane = create_user(db_session, first_name="Jane", last_name="Doe", email="jane@x.com")
    create_user(db_session, first_name="John", last_name="Smith", email="john@x.com")
    jane.events.append(event)
    db_session.commit()

    code, out = run("list", "--event-users", str(event.id))
    assert code == 0
    assert "Event: Day 2 (1 registered)" in out
    assert "Jane Doe" in out
    assert "john@x.com" not in out


def test_list_unknown_event_exits_nonzero(run):
    code, out = run("list", "--event-users", "42")
    assert code == 1
    assert "Event 42 not found" in out
