"""Read-only commands: sheet-vs-store reports and listings of events and users."""
from regadmin.cli import output
from regadmin.cli.imports import add_sheet_arguments
from regadmin.core.errors import ConfigurationError
from regadmin.importing.reconcile import analyze_attendance, compare_attendance, find_missing_users
from regadmin.importing.reports import write_missing_report
from regadmin.importing.workbook import open_sheet
from regadmin.models.event import Event
from regadmin.models.user import ROLES, User


def register(subparsers) -> None:
    p = subparsers.add_parser("find-missing", help="List sheet rows with no matching registrant")
    add_sheet_arguments(p)
    p.add_argument("--start-row", type=int, default=2)
    p.add_argument("--last-name-col", default="A")
    p.add_argument("--first-name-col", default="B")
    p.add_argument("--export", default=None, metavar="PATH", help="Write a text report (relative to EXPORT_DIR)")
    p.set_defaults(handler=run_find_missing)

    p = subparsers.add_parser("compare-attendance", help="Compare sheet attendance with stored attendance")
    add_sheet_arguments(p)
    p.add_argument("--start-row", type=int, default=2)
    p.add_argument("--last-name-col", default="A")
    p.add_argument("--first-name-col", default="B")
    p.add_argument("--attendance-col", default="Q")
    p.add_argument("--event-id", type=int, default=None, help="Only registrants attached to this event")
    p.set_defaults(handler=run_compare_attendance)

    p = subparsers.add_parser("analyze-attendance", help="Break down the attendance column of a sheet")
    add_sheet_arguments(p)
    p.add_argument("--header-row", type=int, default=2)
    p.add_argument("--start-col", default="A")
    p.add_argument("--end-col", default="Z")
    p.add_argument("--attendance-col", default="F", help="Used when no 'Attendance' header is found")
    p.add_argument("--first-name-col", default=None)
    p.add_argument("--last-name-col", default=None)
    p.add_argument("--expected-count", type=int, default=None, help="Externally reported attendance count")
    p.set_defaults(handler=run_analyze_attendance)

    p = subparsers.add_parser("list", help="List events, users, or the users of one event")
    p.add_argument("--events", action="store_true", help="List all events")
    p.add_argument("--users", action="store_true", help="List all users")
    p.add_argument("--role", choices=ROLES, default=None, help="With --users: only this role")
    p.add_argument("--event-users", type=int, default=None, metavar="EVENT_ID", help="List users of one event")
    p.set_defaults(handler=run_list)


def run_find_missing(args, db) -> int:
    output.banner("Finding missing registrants")
    grid = open_sheet(args.file, args.sheet)
    report = find_missing_users(
        db,
        grid,
        start_row=args.start_row,
        last_name_col=args.last_name_col.upper(),
        first_name_col=args.first_name_col.upper(),
    )

    if report.missing:
        output.section("Missing from the database")
        rows = [[e.row, e.last_name, e.first_name, e.full_name] for e in report.missing]
        output.table(["Row", "Last Name", "First Name", "Full Name"], rows)
    else:
        print("\n✓ Every named row has a matching registrant.")

    output.counts(
        {
            "sheet": report.sheet,
            "rows processed": report.processed,
            "found": len(report.found),
            "missing": len(report.missing),
            "skipped (empty)": report.skipped,
        }
    )
    if args.export:
        path = write_missing_report(report, args.file, args.export)
        print(f"\n✓ Report written to {path}")
    return 0


def run_compare_attendance(args, db) -> int:
    output.banner("Comparing attendance")
    grid = open_sheet(args.file, args.sheet)
    comparison = compare_attendance(
        db,
        grid,
        start_row=args.start_row,
        last_name_col=args.last_name_col.upper(),
        first_name_col=args.first_name_col.upper(),
        attendance_col=args.attendance_col.upper(),
        event_id=args.event_id,
    )
    tally = comparison.tally

    if comparison.duplicates:
        output.section("Duplicate names in sheet")
        rows = [
            [d.last_name, d.first_name, d.times, ", ".join(map(str, d.rows)), ", ".join(map(str, d.attendance_values))]
            for d in comparison.duplicates
        ]
        output.table(["Last Name", "First Name", "Times", "Rows", "Attendance"], rows)

    if tally.missing_names:
        output.section("Attendance rows with a missing name")
        rows = [[e.row, e.last_name, e.first_name, e.name_issue] for e in tally.missing_names]
        output.table(["Row", "Last Name", "First Name", "Issue"], rows)

    if comparison.in_sheet_not_in_store:
        output.section("Present in sheet, not in database")
        rows = [[e.row, e.last_name, e.first_name] for e in comparison.in_sheet_not_in_store]
        output.table(["Row", "Last Name", "First Name"], rows)

    if comparison.mismatches:
        output.section("Attendance differs")
        rows = [
            [m.entry.row, m.stored.id, m.entry.last_name, m.entry.first_name, int(m.entry.attendance), int(m.stored.attendance)]
            for m in comparison.mismatches
        ]
        output.table(["Row", "ID", "Last Name", "First Name", "Sheet", "Database"], rows)

    if comparison.in_store_not_in_sheet:
        output.section("Present in database, not in sheet")
        rows = [[s.id, s.last_name, s.first_name] for s in comparison.in_store_not_in_sheet]
        output.table(["ID", "Last Name", "First Name"], rows)

    b = comparison.breakdown()
    output.counts(
        {
            "sheet attendance (N)": b["sheet_attendance"],
            "duplicates in sheet (D)": b["duplicates_in_sheet"],
            "missing names in sheet (E)": b["missing_names_in_sheet"],
            "valid in sheet (N - D - E)": b["valid_in_sheet"],
            "database attendance": b["store_attendance"],
            "difference": b["difference"],
        },
        title="Attendance Summary",
    )
    print("\nDifference explained by:")
    print(f"  + {b['duplicates_in_sheet']} duplicate rows in sheet")
    print(f"  + {b['missing_names_in_sheet']} attendance rows without a name")
    print(f"  + {b['missing_in_store']} present in sheet, not in database")
    print(f"  + {b['present_in_sheet_only']} present in sheet, absent in database")
    print(f"  - {b['present_in_store_only']} present in database, absent in sheet")
    print(f"  - {b['missing_in_sheet']} present in database, not in sheet")
    print(f"  - {b['duplicates_in_store']} duplicate attending registrants in database")
    return 0


def run_analyze_attendance(args, db) -> int:
    output.banner("Analyzing attendance")
    grid = open_sheet(args.file, args.sheet)
    analysis = analyze_attendance(
        grid,
        header_row=args.header_row,
        start_col=args.start_col,
        end_col=args.end_col,
        attendance_col=args.attendance_col,
        first_name_col=args.first_name_col.upper() if args.first_name_col else None,
        last_name_col=args.last_name_col.upper() if args.last_name_col else None,
        expected_count=args.expected_count,
    )
    tally = analysis.tally
    if not analysis.attendance_detected:
        print(f"⚠ 'Attendance' header not found, using column {analysis.attendance_col}")

    if tally.duplicates:
        output.section("Repeated names among attendance rows")
        rows = [[e.row, first_row, e.last_name, e.first_name] for e, first_row in tally.duplicates]
        output.table(["Row", "First Seen", "Last Name", "First Name"], rows)

    if tally.missing_names:
        output.section("Attendance rows with a missing name")
        rows = [[e.row, e.last_name, e.first_name, e.name_issue] for e in tally.missing_names]
        output.table(["Row", "Last Name", "First Name", "Issue"], rows)

    if analysis.empty_name_rows:
        output.section("Rows with no name at all")
        rows = [[e.row, e.raw_attendance] for e in analysis.empty_name_rows]
        output.table(["Row", "Attendance"], rows)

    summary = {
        "sheet": analysis.sheet,
        "data rows": analysis.total_rows,
        "attendance = 1 (N)": tally.count,
        "attendance other value": analysis.other_attendance,
        "attendance empty": analysis.empty_attendance,
        "duplicates (D)": tally.duplicate_count,
        "missing names (E)": tally.missing_name_count,
        "valid (N - D - E)": tally.valid_count,
    }
    if analysis.expected_count is not None:
        summary["expected count"] = analysis.expected_count
        summary["gap to expected"] = analysis.expected_gap
    output.counts(summary, title="Attendance Analysis")
    return 0


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def run_list(args, db) -> int:
    if not (args.events or args.users or args.event_users is not None):
        print("Specify --events, --users [--role ROLE] or --event-users EVENT_ID")
        return 0

    if args.events:
        events = (
            db.query(Event)
            .filter(Event.deleted_at.is_(None))
            .order_by(Event.start_date.desc(), Event.id.desc())
            .all()
        )
        output.section("Events")
        if events:
            rows = [
                [
                    e.id,
                    e.name,
                    e.status,
                    f"{e.start_date:%Y-%m-%d %H:%M}" if e.start_date else "N/A",
                    e.location or "N/A",
                    len(e.users),
                ]
                for e in events
            ]
            output.table(["ID", "Name", "Status", "Start", "Location", "Attendees"], rows, limit=len(rows))
        else:
            print("  No events found.")

    if args.users:
        q = db.query(User).filter(User.deleted_at.is_(None))
        if args.role:
            q = q.filter(User.role == args.role)
        users = q.order_by(User.first_name, User.id).all()
        output.section(f"Users with role '{args.role}'" if args.role else "All users")
        if users:
            rows = [[u.id, u.full_name, u.email, u.role, yes_no(u.is_active), len(u.events)] for u in users]
            output.table(["ID", "Name", "Email", "Role", "Active", "Events"], rows, limit=len(rows))
        else:
            print("  No users found.")

    if args.event_users is not None:
        event = db.get(Event, args.event_users)
        if event is None or event.deleted_at is not None:
            raise ConfigurationError(f"Event {args.event_users} not found")
        users = sorted((u for u in event.users if u.deleted_at is None), key=lambda u: (u.first_name, u.id))
        output.section(f"Event: {event.name} ({len(users)} registered)")
        if users:
            rows = [[u.id, u.full_name, u.email, u.role, yes_no(u.is_active)] for u in users]
            output.table(["ID", "Name", "Email", "Role", "Active"], rows, limit=len(rows))
        else:
            print("  No users registered for this event.")
    return 0
