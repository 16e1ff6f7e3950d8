"""Commands that write spreadsheet rows into the registrant store."""
from regadmin.cli import output
from regadmin.core.errors import ConfigurationError
from regadmin.importing.headers import TARGET_FIELDS, UNMAP, ColumnMapping
from regadmin.importing.orchestrator import ImportOptions, ImportResult, RegistrationImporter
from regadmin.importing.workbook import open_sheet
from regadmin.jobs.event_registrations import DAYS, import_event_registrations
from regadmin.jobs.registrants import import_age_ranges


def add_sheet_arguments(parser, sheet_help: str = "Sheet name (default: the active sheet)") -> None:
    parser.add_argument("file", help="Spreadsheet path; relative names resolve under IMPORT_DIR")
    parser.add_argument("--sheet", default=None, help=sheet_help)


def parse_mapping_overrides(values: list[str]) -> dict[str, str]:
    overrides = {}
    for item in values:
        column, sep, target = item.partition("=")
        if not sep or not column.strip():
            raise ConfigurationError(f"Invalid --map '{item}', expected COLUMN=field (or COLUMN=-)")
        overrides[column.strip().upper()] = target.strip()
    return overrides


def register(subparsers) -> None:
    p = subparsers.add_parser("import-registrations", help="Import the registration sheet")
    add_sheet_arguments(p, sheet_help="Sheet name (default: DEFAULT_SHEET_NAME)")
    p.add_argument("--header-row", type=int, default=2)
    p.add_argument("--start-col", default="A")
    p.add_argument("--end-col", default="Z")
    p.add_argument("--start-row", type=int, default=None, help="First data row to process")
    p.add_argument("--resume", action="store_true", help="Continue after the last imported row of this sheet")
    p.add_argument("--skip-existing", action="store_true", help="Skip rows already imported from this sheet")
    p.add_argument("--event-id", type=int, default=None, help="Attach every imported registrant to this event")
    p.add_argument("--no-update", action="store_true", help="Leave existing registrants untouched")
    p.add_argument("--map", action="append", default=[], metavar="COL=FIELD", help="Override a column mapping")
    p.add_argument("--interactive", action="store_true", help="Review the column mapping before importing")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=run_import_registrations)

    p = subparsers.add_parser("import-event-registrations", help="Attach registrants to day events from a day sheet")
    add_sheet_arguments(p)
    for n in (1, 2, 3):
        p.add_argument(f"--day{n}-event-id", type=int, default=None)
    p.add_argument("--header-row", type=int, default=1)
    p.add_argument("--start-col", default="A")
    p.add_argument("--end-col", default="H")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_import_event_registrations)

    p = subparsers.add_parser("import-age-ranges", help="Update age ranges of registrants matched by name")
    add_sheet_arguments(p)
    p.add_argument("--start-row", type=int, default=2)
    p.add_argument("--end-row", type=int, default=None)
    p.add_argument("--last-name-col", default="A")
    p.add_argument("--first-name-col", default="B")
    p.add_argument("--age-range-col", default="C")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(handler=run_import_age_ranges)


# ---------------------------------------------------------------------------
# import-registrations
# ---------------------------------------------------------------------------


def print_mapping(mapping: ColumnMapping) -> None:
    output.section("Column mapping")
    rows = [[h.column, h.raw, mapping.field_for(h.column) or "(unmapped)"] for h in mapping.headers]
    output.table(["Column", "Header", "Field"], rows, limit=len(rows))
    missing = mapping.missing_expected()
    if missing:
        print(f"\n⚠ Expected headers not found: {', '.join(missing)}")


def prompt_overrides(mapping: ColumnMapping) -> dict[str, str]:
    """Ask for each header: Enter keeps it, a field name retargets it, '-' unmaps it."""
    print(f"\nFields: {', '.join(TARGET_FIELDS)}")
    overrides = {}
    for h in mapping.headers:
        current = mapping.field_for(h.column) or UNMAP
        answer = input(f"  {h.column} '{h.raw}' -> [{current}]: ").strip()
        if answer and answer != current:
            overrides[h.column] = answer
    return overrides


def print_result(result: ImportResult) -> None:
    if result.previews:
        output.section("Preview")
        rows = [
            [p["row"], p["first_name"], p["last_name"], p.get("email", ""), p["decision"], ", ".join(p.get("changed", []))]
            for p in result.previews
        ]
        output.table(["Row", "First Name", "Last Name", "Email", "Decision", "Changed"], rows)

    c = result.counts
    output.counts(
        {
            "rows": f"{result.start_row}-{result.end_row}",
            "inserted": c["inserted"],
            "updated": c["updated"],
            "unchanged": c["unchanged"],
            "skipped (blank)": c["skipped_blank"],
            "skipped (already imported)": c["skipped_by_position"],
            "skipped (existing)": c["skipped_duplicate"],
            "attached to event": c["attached"],
            "failed": c["failed"],
        },
        title="Import Summary",
    )

    samples = result.failure_samples()
    if samples:
        print("\nFailures:")
        for message in samples:
            print(f"  ❌ {message}")
        if result.failed > len(samples):
            print(f"  ...and {result.failed - len(samples)} more")

    unresolved = result.unresolved_spheres
    if unresolved:
        print(f"\n⚠ Sphere labels with no match: {', '.join(unresolved)}")


def run_import_registrations(args, db) -> int:
    options = ImportOptions(
        path=args.file,
        sheet=args.sheet,
        header_row=args.header_row,
        start_col=args.start_col,
        end_col=args.end_col,
        start_row=args.start_row,
        resume=args.resume,
        skip_existing=args.skip_existing,
        event_id=args.event_id,
        dry_run=args.dry_run,
        update_existing=not args.no_update,
        overrides=parse_mapping_overrides(args.map),
    )
    output.banner("Importing registrations", dry_run=args.dry_run)

    importer = RegistrationImporter(db, options)
    plan = importer.prepare()
    print(f"  Sheet: {plan.sheet}")
    print(f"  Rows:  {plan.start_row}-{plan.end_row}")
    if plan.event is not None:
        print(f"  Event: {plan.event.name} (#{plan.event.id})")
    print_mapping(plan.mapping)

    if args.interactive:
        overrides = prompt_overrides(plan.mapping)
        if overrides:
            options.overrides.update(overrides)
            plan = importer.prepare(plan.grid)
            print_mapping(plan.mapping)
        if not output.confirm("Proceed with this mapping?", args.yes):
            print("Cancelled.")
            return 0

    result = importer.run(plan)
    print_result(result)
    output.done(args.dry_run)
    return 0


# ---------------------------------------------------------------------------
# import-event-registrations / import-age-ranges
# ---------------------------------------------------------------------------


def run_import_event_registrations(args, db) -> int:
    output.banner("Importing event registrations", dry_run=args.dry_run)
    grid = open_sheet(args.file, args.sheet)
    day_event_ids = dict(zip(DAYS, (args.day1_event_id, args.day2_event_id, args.day3_event_id)))

    result = import_event_registrations(
        db,
        grid,
        day_event_ids=day_event_ids,
        header_row=args.header_row,
        start_col=args.start_col,
        end_col=args.end_col,
        dry_run=args.dry_run,
    )

    if result.preview:
        output.section("Preview")
        rows = [[p["row"], p["first_name"], p["last_name"], ", ".join(p["days"])] for p in result.preview]
        output.table(["Row", "First Name", "Last Name", "Days"], rows)

    summary = {"rows processed": result.rows, "new registrants": result.created, "existing registrants": result.existing}
    for day, n in result.attachments.items():
        summary[f"{day} attachments"] = n
    output.counts(summary)
    output.done(args.dry_run)
    return 0


def run_import_age_ranges(args, db) -> int:
    output.banner("Importing age ranges", dry_run=args.dry_run)
    grid = open_sheet(args.file, args.sheet)
    result = import_age_ranges(
        db,
        grid,
        start_row=args.start_row,
        end_row=args.end_row,
        last_name_col=args.last_name_col.upper(),
        first_name_col=args.first_name_col.upper(),
        age_range_col=args.age_range_col.upper(),
        dry_run=args.dry_run,
    )

    if result.updated:
        output.section("Updated")
        rows = [[u["row"], u["id"], u["name"], u["old"] or "", u["new"]] for u in result.updated]
        output.table(["Row", "ID", "Name", "Old", "New"], rows)
    if result.not_found:
        output.section("Not found")
        rows = [[n["row"], n["last_name"], n["first_name"], n["age_range"]] for n in result.not_found]
        output.table(["Row", "Last Name", "First Name", "Age Range"], rows)

    output.counts(
        {
            "updated": len(result.updated),
            "unchanged": result.unchanged,
            "not found": len(result.not_found),
            "empty rows": result.skipped_empty,
        }
    )
    output.done(args.dry_run)
    return 0
