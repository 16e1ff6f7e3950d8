"""Console helpers shared by the CLI commands."""
from regadmin.core.config import settings

RULE = "=" * 60


def banner(title: str, dry_run: bool = False) -> None:
    print(f"\n{title}")
    print(RULE)
    if dry_run:
        print("  [DRY RUN MODE - No changes will be made]")


def section(title: str) -> None:
    print(f"\n=== {title} ===")


def table(headers: list[str], rows: list[list], limit: int | None = None) -> None:
    """Fixed-width table; at most `limit` rows, then an '...and N more' line."""
    limit = settings.PREVIEW_LIMIT if limit is None else limit
    shown = [["" if v is None else str(v) for v in r] for r in rows[:limit]]
    widths = [len(h) for h in headers]
    for r in shown:
        for i, v in enumerate(r):
            widths[i] = max(widths[i], len(v))

    def line(values):
        return "  " + "  ".join(v.ljust(widths[i]) for i, v in enumerate(values))

    print(line(headers))
    print("  " + "  ".join("-" * w for w in widths))
    for r in shown:
        print(line(r))
    if len(rows) > limit:
        print(f"  ...and {len(rows) - limit} more")


def counts(values: dict, title: str = "Summary") -> None:
    section(title)
    width = max((len(str(k)) for k in values), default=0)
    for key, value in values.items():
        label = str(key).replace("_", " ")
        label = label[:1].upper() + label[1:]
        print(f"  {label.ljust(width)} : {value}")


def confirm(prompt: str, assume_yes: bool = False) -> bool:
    if assume_yes:
        return True
    answer = input(f"{prompt} [y/N]: ").strip().lower()
    return answer in ("y", "yes")


def done(dry_run: bool) -> None:
    if dry_run:
        print("\n✓ Dry-run complete. No changes were saved.")
    else:
        print("\n✓ Done.")
