"""
Maintenance commands. Destructive ones first run the job as a dry run to
show what would change, then ask before running it for real.
"""
import getpass
from datetime import datetime

from regadmin.cli import output
from regadmin.core.errors import ConfigurationError
from regadmin.jobs.cleanup import DeletionResult, cleanup_event_users, cleanup_null_users, undo_import
from regadmin.jobs.registrants import add_users_to_event, reset_admin_password, update_working_status
from regadmin.jobs.spheres import attach_spheres, fix_vocation_spheres, seed_spheres
from regadmin.models.event import Event


def timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid date/time '{value}', expected e.g. 2024-11-05 or 2024-11-05T08:30") from e


def id_list(value: str) -> list[int]:
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise ConfigurationError(f"Invalid id list '{value}', expected e.g. 1,2,3") from e


def register(subparsers) -> None:
    p = subparsers.add_parser("undo-import", help="Delete registrants created in a time window")
    p.add_argument("--created-after", type=str, default=None, help="ISO date/time, required")
    p.add_argument("--created-before", type=str, default=None)
    p.add_argument("--event-id", type=int, default=None)
    p.add_argument("--force", action="store_true", help="Delete permanently instead of soft delete")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true")
    p.set_defaults(handler=run_undo_import)

    p = subparsers.add_parser("cleanup-null-users", help="Delete registrants with no first or last name")
    p.add_argument("--trashed-only", action="store_true", help="Purge soft-deleted rows only")
    p.add_argument("--force", action="store_true", help="Delete permanently instead of soft delete")
    p.add_argument("--event-id", type=int, default=None)
    p.add_argument("--created-after", type=str, default=None)
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true")
    p.set_defaults(handler=run_cleanup_null_users)

    p = subparsers.add_parser("cleanup-event-users", help="Remove an event's registrants")
    p.add_argument("event_id", type=int)
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true")
    p.set_defaults(handler=run_cleanup_event_users)

    p = subparsers.add_parser("attach-spheres", help="Attach spheres to every user of a role")
    p.add_argument("--sphere-id", type=int, action="append", dest="sphere_ids", default=[])
    p.add_argument("--all-spheres", action="store_true")
    p.add_argument("--role", default="user")
    p.add_argument("--without-spheres", action="store_true", help="Only users that have no sphere yet")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_attach_spheres)

    p = subparsers.add_parser("fix-vocation-spheres", help="Clear spheres of registrants who did not attend")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true")
    p.set_defaults(handler=run_fix_vocation_spheres)

    p = subparsers.add_parser("update-working-status", help="Mark registrants outside 18-24 as working")
    p.add_argument("--age-range", default=None, help="Only this age range")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_update_working_status)

    p = subparsers.add_parser("event-add-users", help="Attach (or detach) users to an event")
    p.add_argument("event_id", type=int)
    p.add_argument("--users", type=str, default=None, help="Comma separated user ids")
    p.add_argument("--role", default=None)
    p.add_argument("--all", dest="all_users", action="store_true")
    p.add_argument("--detach", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true")
    p.set_defaults(handler=run_event_add_users)

    p = subparsers.add_parser("seed-spheres", help="Create or rename the standard spheres")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_seed_spheres)

    p = subparsers.add_parser("reset-admin-password", help="Set a new password for an admin")
    p.add_argument("email")
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_reset_admin_password)


# ---------------------------------------------------------------------------
# deletions
# ---------------------------------------------------------------------------


def show_targets(result: DeletionResult) -> None:
    if not result.targets:
        return
    output.section("Registrants")
    rows = [[u.id, u.first_name or "", u.last_name or "", u.email or "", f"{u.created_at:%Y-%m-%d %H:%M}"] for u in result.targets]
    output.table(["ID", "First Name", "Last Name", "Email", "Created"], rows)


def apply_after_preview(args, job, describe) -> int:
    """Dry run, show, confirm, then run for real unless --dry-run was given."""
    preview = job(dry_run=True)
    show_targets(preview)
    print(f"\n{describe(preview)}")
    if args.dry_run:
        output.done(True)
        return 0
    if not preview.targets and not preview.detached:
        print("Nothing to do.")
        return 0
    if not output.confirm("Continue?", args.yes):
        print("Cancelled.")
        return 0
    result = job(dry_run=False)
    print(describe(result))
    output.done(False)
    return 0


def _deletion_text(result: DeletionResult) -> str:
    verb = "permanently deleted" if result.permanent else "soft deleted"
    prefix = "Would be" if result.dry_run else "Registrants"
    return f"{prefix} {verb}: {result.deleted}"


def run_undo_import(args, db) -> int:
    output.banner("Undo import", dry_run=args.dry_run)
    created_after = timestamp(args.created_after) if args.created_after else None
    created_before = timestamp(args.created_before) if args.created_before else None

    def job(dry_run):
        return undo_import(
            db,
            created_after=created_after,
            created_before=created_before,
            event_id=args.event_id,
            force=args.force,
            dry_run=dry_run,
        )

    return apply_after_preview(args, job, _deletion_text)


def run_cleanup_null_users(args, db) -> int:
    output.banner("Cleaning up registrants without names", dry_run=args.dry_run)
    created_after = timestamp(args.created_after) if args.created_after else None

    def job(dry_run):
        return cleanup_null_users(
            db,
            trashed_only=args.trashed_only,
            force=args.force,
            event_id=args.event_id,
            created_after=created_after,
            dry_run=dry_run,
        )

    return apply_after_preview(args, job, _deletion_text)


def run_cleanup_event_users(args, db) -> int:
    output.banner(f"Cleaning up registrants of event {args.event_id}", dry_run=args.dry_run)

    def describe(result):
        prefix = "Would be" if result.dry_run else "Registrants"
        return f"{prefix} deleted (only in this event): {result.deleted}\n{prefix} detached (also in other events): {result.detached}"

    return apply_after_preview(args, lambda dry_run: cleanup_event_users(db, args.event_id, dry_run=dry_run), describe)


def run_fix_vocation_spheres(args, db) -> int:
    output.banner("Clearing spheres of non-attendees", dry_run=args.dry_run)
    preview = fix_vocation_spheres(db, dry_run=True)
    if preview.cleaned:
        output.section("Registrants to clean")
        rows = [[c["id"], c["name"], c["email"] or "", c["vocation_work_sphere"], c["sphere_count"]] for c in preview.cleaned]
        output.table(["ID", "Name", "Email", "Vocation/Work Sphere", "Spheres"], rows)
    output.counts({"to clean": len(preview.cleaned), "kept (attended)": preview.kept})

    if args.dry_run:
        output.done(True)
        return 0
    if not preview.cleaned:
        print("Nothing to do.")
        return 0
    if not output.confirm("Continue?", args.yes):
        print("Cancelled.")
        return 0
    result = fix_vocation_spheres(db)
    print(f"\nCleaned: {len(result.cleaned)}")
    output.done(False)
    return 0


# ---------------------------------------------------------------------------
# updates
# ---------------------------------------------------------------------------


def run_attach_spheres(args, db) -> int:
    output.banner("Attaching spheres", dry_run=args.dry_run)
    result = attach_spheres(
        db,
        sphere_ids=args.sphere_ids,
        all_spheres=args.all_spheres,
        role=args.role,
        without_spheres=args.without_spheres,
        dry_run=args.dry_run,
    )
    print("Spheres: " + ", ".join(f"{s.name} (#{s.id})" for s in result.spheres))
    output.counts({"users": result.users, "links created": result.links_created})
    output.done(args.dry_run)
    return 0


def run_update_working_status(args, db) -> int:
    output.banner("Updating working status", dry_run=args.dry_run)
    result = update_working_status(db, age_range=args.age_range, dry_run=args.dry_run)

    output.section("Age ranges")
    output.table(["Age Range", "Registrants"], [[k, v] for k, v in result.age_ranges.items()])
    output.section("Current status of targeted registrants")
    output.table(["Status", "Registrants"], [[k, v] for k, v in result.before.items()])
    output.counts({"updated to working": result.updated})
    output.done(args.dry_run)
    return 0


def run_event_add_users(args, db) -> int:
    event = db.get(Event, args.event_id)
    if event is None:
        raise ConfigurationError(f"Event {args.event_id} not found")
    action = "Detaching users from" if args.detach else "Attaching users to"
    output.banner(f"{action} {event.name}", dry_run=args.dry_run)

    def job(dry_run):
        return add_users_to_event(
            db,
            args.event_id,
            user_ids=id_list(args.users) if args.users else None,
            role=args.role,
            all_users=args.all_users,
            detach=args.detach,
            dry_run=dry_run,
        )

    if args.detach and not args.dry_run:
        preview = job(dry_run=True)
        output.counts(preview.as_detach_stats(), title="Preview")
        if not output.confirm("Continue?", args.yes):
            print("Cancelled.")
            return 0

    change = job(dry_run=args.dry_run)
    stats = change.as_detach_stats() if args.detach else change.as_attach_stats()
    output.counts(stats)
    output.done(args.dry_run)
    return 0


def run_seed_spheres(args, db) -> int:
    output.banner("Seeding spheres", dry_run=args.dry_run)
    stats = seed_spheres(db, dry_run=args.dry_run)
    output.counts(stats)
    output.done(args.dry_run)
    return 0


def run_reset_admin_password(args, db) -> int:
    output.banner(f"Resetting password for {args.email}", dry_run=args.dry_run)
    password = args.password
    if password is None:
        password = getpass.getpass("New password: ")
        if getpass.getpass("Confirm password: ") != password:
            raise ConfigurationError("Passwords do not match")
    admin = reset_admin_password(db, args.email, password, dry_run=args.dry_run)
    print(f"  Admin: {admin.full_name} ({admin.email}, {admin.role})")
    output.done(args.dry_run)
    return 0
