"""
Registration sheet import.

Each data row is classified, mapped, sphere-resolved and then matched
against existing registrants (diff-and-update) or inserted. Every row runs
inside its own SAVEPOINT so a failing row is rolled back on its own and the
batch continues. A dry run executes exactly the same statements inside one
outer transaction that is rolled back at the end, so its decisions and
counts are the ones a real run would produce.

Start row precedence: the effective first row is the largest of
  - the row after the header,
  - --start-row when given,
  - one past the highest recorded source_row for the sheet when --resume.
--skip-existing is applied afterwards, row by row, against the set of
source rows recorded for the sheet when the run starts.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.orm import Session

from regadmin.core.config import settings
from regadmin.core.errors import ConfigurationError
from regadmin.importing.headers import ColumnMapping, apply_overrides, build_column_index, map_columns
from regadmin.importing.matching import (
    ChangeSet,
    apply_changes,
    attach_to_event,
    create_registrant,
    diff_registrant,
    find_existing_registrant,
    get_or_create_group,
)
from regadmin.importing.rows import RowPayload, classify_row
from regadmin.importing.spheres import SphereResolver, checkbox_columns, collect_sphere_labels
from regadmin.importing.workbook import SheetGrid, column_range, open_sheet
from regadmin.models.event import Event
from regadmin.models.user import User

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name")


class RowStatus(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED_BLANK = "skipped_blank"
    SKIPPED_BY_POSITION = "skipped_by_position"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


@dataclass
class ImportOptions:
    path: str | Path
    sheet: str | None = None
    header_row: int = 2
    start_col: str = "A"
    end_col: str = "Z"
    start_row: int | None = None
    resume: bool = False
    skip_existing: bool = False
    event_id: int | None = None
    dry_run: bool = False
    update_existing: bool = True
    overrides: dict[str, str] = field(default_factory=dict)  # column letter -> field or "-"


@dataclass(frozen=True)
class RowOutcome:
    row: int
    status: RowStatus
    registrant_id: int | None = None
    changes: ChangeSet | None = None
    attached: bool = False
    message: str | None = None
    sphere_labels: tuple[str, ...] = ()
    unresolved_spheres: tuple[str, ...] = ()


@dataclass
class ImportPlan:
    """Everything decided before the first row is touched."""

    grid: SheetGrid
    mapping: ColumnMapping
    columns: list[str]
    first_data_row: int
    start_row: int
    imported_rows: frozenset[int]
    event: Event | None

    @property
    def sheet(self) -> str:
        return self.grid.title

    @property
    def end_row(self) -> int:
        return self.grid.max_row


@dataclass
class ImportResult:
    sheet: str
    start_row: int
    end_row: int
    dry_run: bool
    outcomes: list[RowOutcome]
    previews: list[dict]

    @property
    def counts(self) -> dict[str, int]:
        tally = Counter(o.status.value for o in self.outcomes)
        counts = {s.value: tally.get(s.value, 0) for s in RowStatus}
        counts["attached"] = sum(1 for o in self.outcomes if o.attached)
        return counts

    def count(self, status: RowStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def inserted(self) -> int:
        return self.count(RowStatus.INSERTED)

    @property
    def updated(self) -> int:
        return self.count(RowStatus.UPDATED)

    @property
    def unchanged(self) -> int:
        return self.count(RowStatus.UNCHANGED)

    @property
    def failed(self) -> int:
        return self.count(RowStatus.FAILED)

    @property
    def attached(self) -> int:
        return self.counts["attached"]

    def failure_samples(self, limit: int | None = None) -> list[str]:
        limit = settings.FAILURE_SAMPLE_LIMIT if limit is None else limit
        return [o.message for o in self.outcomes if o.status == RowStatus.FAILED][:limit]

    @property
    def unresolved_spheres(self) -> list[str]:
        labels: dict[str, None] = {}
        for o in self.outcomes:
            for label in o.unresolved_spheres:
                labels.setdefault(label, None)
        return list(labels)


def last_imported_row(db: Session, sheet: str) -> int | None:
    return db.query(func.max(User.source_row)).filter(User.source_sheet == sheet).scalar()


def imported_rows(db: Session, sheet: str) -> frozenset[int]:
    rows = db.query(User.source_row).filter(User.source_sheet == sheet, User.source_row.isnot(None)).all()
    return frozenset(r[0] for r in rows)


def effective_start_row(
    first_data_row: int,
    start_row: int | None = None,
    resume_after: int | None = None,
) -> int:
    candidates = [first_data_row]
    if start_row is not None:
        candidates.append(start_row)
    if resume_after is not None:
        candidates.append(resume_after + 1)
    return max(candidates)


class RegistrationImporter:
    def __init__(self, db: Session, options: ImportOptions):
        self.db = db
        self.options = options

    def prepare(self, grid: SheetGrid | None = None) -> ImportPlan:
        """Load the sheet and settle mapping, start row and event; raises ConfigurationError."""
        opts = self.options
        if opts.header_row < 1:
            raise ConfigurationError("--header-row must be 1 or greater")
        if grid is None:
            grid = open_sheet(opts.path, opts.sheet or settings.DEFAULT_SHEET_NAME)

        columns = column_range(opts.start_col, opts.end_col)
        headers = build_column_index(grid.row_values(opts.header_row, columns))
        mapping = map_columns(headers)
        if opts.overrides:
            try:
                mapping = apply_overrides(mapping, opts.overrides)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        missing = [f for f in REQUIRED_FIELDS if f not in mapping.fields]
        if missing:
            raise ConfigurationError(
                f"Required column(s) missing in header row {opts.header_row}: {', '.join(missing)}"
            )

        event = None
        if opts.event_id is not None:
            event = self.db.get(Event, opts.event_id)
            if event is None or event.deleted_at is not None:
                raise ConfigurationError(f"Event {opts.event_id} not found")

        first_data_row = opts.header_row + 1
        resume_after = last_imported_row(self.db, grid.title) if opts.resume else None
        start = effective_start_row(first_data_row, opts.start_row, resume_after)
        seen = imported_rows(self.db, grid.title) if opts.skip_existing else frozenset()

        logger.info(
            "Import plan: sheet=%r rows %d-%d, %d mapped columns, dry_run=%s",
            grid.title, start, grid.max_row, len(mapping.fields), opts.dry_run,
        )
        return ImportPlan(
            grid=grid,
            mapping=mapping,
            columns=columns,
            first_data_row=first_data_row,
            start_row=start,
            imported_rows=seen,
            event=event,
        )

    def run(self, plan: ImportPlan | None = None) -> ImportResult:
        plan = plan or self.prepare()
        resolver = SphereResolver(self.db)
        checkboxes = checkbox_columns(plan.mapping.headers, exclude=plan.mapping.overridden)

        outcomes: list[RowOutcome] = []
        previews: list[dict] = []
        try:
            for row in range(plan.start_row, plan.end_row + 1):
                values = plan.grid.row_values(row, plan.columns)
                payload = classify_row(row, values, plan.mapping.fields)
                if payload is None:
                    outcomes.append(RowOutcome(row=row, status=RowStatus.SKIPPED_BLANK))
                    continue
                if row in plan.imported_rows:
                    outcomes.append(RowOutcome(row=row, status=RowStatus.SKIPPED_BY_POSITION))
                    continue

                outcome = self._run_row(plan, payload, values, resolver, checkboxes)
                outcomes.append(outcome)
                if len(previews) < settings.PREVIEW_LIMIT:
                    previews.append(preview_for(payload, outcome))
        finally:
            if self.options.dry_run:
                self.db.rollback()

        return ImportResult(
            sheet=plan.sheet,
            start_row=plan.start_row,
            end_row=plan.end_row,
            dry_run=self.options.dry_run,
            outcomes=outcomes,
            previews=previews,
        )

    def _run_row(self, plan, payload, values, resolver, checkboxes) -> RowOutcome:
        try:
            with self.db.begin_nested():
                outcome = self.process_row(plan, payload, values, resolver, checkboxes)
        except Exception as e:
            logger.warning("Row %d failed: %s", payload.row, e)
            return RowOutcome(row=payload.row, status=RowStatus.FAILED, message=f"Row {payload.row}: {e}")
        if not self.options.dry_run:
            self.db.commit()
        return outcome

    def group_id(self, payload: RowPayload) -> int | None:
        # Only rows that are written may create a group
        group = get_or_create_group(self.db, payload.group_name)
        return group.id if group else None

    def process_row(
        self,
        plan: ImportPlan,
        payload: RowPayload,
        values: dict[str, object],
        resolver: SphereResolver,
        checkboxes: list[tuple[str, str]],
    ) -> RowOutcome:
        labels = collect_sphere_labels(payload.spheres_raw, values, checkboxes)
        resolution = resolver.resolve(labels)
        if resolution.unresolved:
            logger.info("Row %d: unmatched sphere labels %s", payload.row, resolution.unresolved)
        if labels:
            payload.fields["vocation_work_sphere"] = payload.spheres_raw or ", ".join(labels)

        common = dict(
            row=payload.row,
            sphere_labels=tuple(labels),
            unresolved_spheres=tuple(resolution.unresolved),
        )

        existing = find_existing_registrant(self.db, payload.first_name, payload.last_name) if payload.is_named else None
        if existing is None:
            user = create_registrant(
                self.db,
                payload,
                source_sheet=plan.sheet,
                group_id=self.group_id(payload),
                sphere_ids=resolution.ids,
            )
            if plan.event is not None:
                attach_to_event(self.db, user, plan.event)
            return RowOutcome(status=RowStatus.INSERTED, registrant_id=user.id, **common)

        attached = attach_to_event(self.db, existing, plan.event) if plan.event is not None else False

        if not self.options.update_existing:
            return RowOutcome(
                status=RowStatus.SKIPPED_DUPLICATE, registrant_id=existing.id, attached=attached, **common
            )

        changes = diff_registrant(existing, payload, group_id=self.group_id(payload), sphere_ids=resolution.ids)
        if not changes.has_changes:
            return RowOutcome(
                status=RowStatus.UNCHANGED, registrant_id=existing.id, attached=attached, **common
            )
        apply_changes(self.db, existing, changes)
        return RowOutcome(
            status=RowStatus.UPDATED,
            registrant_id=existing.id,
            changes=changes,
            attached=attached,
            **common,
        )


def preview_for(payload: RowPayload, outcome: RowOutcome) -> dict:
    data = payload.as_preview()
    data["decision"] = outcome.status.value
    if outcome.sphere_labels:
        data["spheres"] = list(outcome.sphere_labels)
    if outcome.unresolved_spheres:
        data["unresolved_spheres"] = list(outcome.unresolved_spheres)
    if outcome.changes is not None:
        data["changed"] = outcome.changes.changed_names()
    if outcome.message:
        data["error"] = outcome.message
    return data


def run_import(db: Session, options: ImportOptions, grid: SheetGrid | None = None) -> ImportResult:
    importer = RegistrationImporter(db, options)
    return importer.run(importer.prepare(grid))
