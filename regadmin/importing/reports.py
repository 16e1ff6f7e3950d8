from datetime import datetime
from pathlib import Path

from regadmin.core.config import settings
from regadmin.importing.reconcile import MissingUsersReport

RULE_WIDTH = 80


def render_missing_report(report: MissingUsersReport, source: str | Path, generated: datetime | None = None) -> str:
    generated = generated or datetime.now()
    lines = [
        "Missing Users Report",
        f"Generated: {generated:%Y-%m-%d %H:%M:%S}",
        f"Excel File: {source}",
        f"Sheet: {report.sheet}",
        f"Total Missing: {len(report.missing)}",
        "=" * RULE_WIDTH,
        "",
        "%-6s %-25s %-25s %s" % ("Row", "Last Name", "First Name", "Full Name"),
        "-" * RULE_WIDTH,
    ]
    for entry in report.missing:
        lines.append("%-6d %-25s %-25s %s" % (entry.row, entry.last_name, entry.first_name, entry.full_name))
    return "\n".join(lines) + "\n"


def write_missing_report(report: MissingUsersReport, source: str | Path, export: str | Path) -> Path:
    """Relative export names land in the configured export directory."""
    path = Path(export)
    if not path.is_absolute():
        path = Path(settings.EXPORT_DIR) / path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_missing_report(report, source), encoding="utf-8")
    return path
