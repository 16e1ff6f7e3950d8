import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from regadmin.importing.headers import HeaderCell
from regadmin.importing.rows import cell_text, to_bool
from regadmin.models.sphere import Sphere

logger = logging.getLogger(__name__)

_SPLIT = re.compile(r"[;,|\n]+|\s+or\s+", re.IGNORECASE)
_CHECKBOX_HEADER = re.compile(r"^vocation/work sphere\s*[-:–]\s*(.+)$", re.IGNORECASE)


def slugify(text: str) -> str:
    """URL-safe slug: 'Every Nation Campus (ENC)' -> 'every-nation-campus-enc'."""
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = text.lower().replace("_", "-").replace("@", "-at-")
    text = re.sub(r"[^a-z0-9\s-]+", "", text)
    text = re.sub(r"[\s-]+", "-", text)
    return text.strip("-")


def dedupe_labels(labels) -> list[str]:
    """Drop blanks and case-insensitive repeats; first spelling and order win."""
    seen: set[str] = set()
    result = []
    for label in labels:
        label = label.strip()
        key = label.lower()
        if not label or key in seen:
            continue
        seen.add(key)
        result.append(label)
    return result


def split_sphere_labels(text: str) -> list[str]:
    """Split a free-text answer on ; , | newlines and the word 'or'."""
    if not text:
        return []
    return dedupe_labels(_SPLIT.split(text))


def checkbox_label(header: HeaderCell) -> str | None:
    """'Vocation/Work Sphere - Business/Economics' -> 'Business/Economics'."""
    collapsed = " ".join(header.raw.split())
    match = _CHECKBOX_HEADER.match(collapsed)
    return match.group(1).strip() if match else None


def checkbox_columns(headers: list[HeaderCell], exclude: set[str] = frozenset()) -> list[tuple[str, str]]:
    """(column letter, label) for every checkbox-style sphere header not in `exclude`."""
    result = []
    for header in headers:
        label = checkbox_label(header)
        if label and header.column not in exclude:
            result.append((header.column, label))
    return result


def checkbox_sphere_labels(values: dict[str, object], columns: list[tuple[str, str]]) -> list[str]:
    return dedupe_labels(label for column, label in columns if to_bool(values.get(column)))


def collect_sphere_labels(
    spheres_raw: str,
    values: dict[str, object],
    columns: list[tuple[str, str]],
) -> list[str]:
    """Free-text list first; checkbox columns only when it yields nothing."""
    labels = split_sphere_labels(cell_text(spheres_raw))
    if labels:
        return labels
    return checkbox_sphere_labels(values, columns)


@dataclass
class SphereResolution:
    ids: list[int] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


def resolve_labels(labels: list[str], lookup: Callable[[str], int | None]) -> SphereResolution:
    """Map labels to ids in order, dropping repeats and collecting misses."""
    result = SphereResolution()
    for label in dedupe_labels(labels):
        sphere_id = lookup(label)
        if sphere_id is None:
            logger.debug("No sphere matches label %r", label)
            result.unresolved.append(label)
        elif sphere_id not in result.ids:
            result.ids.append(sphere_id)
    return result


class SphereResolver:
    """
    Resolves labels against the sphere table: exact slug first, then a
    case-insensitive name match. Unknown labels are reported, not created.
    """

    def __init__(self, db: Session):
        spheres = db.query(Sphere).order_by(Sphere.id).all()
        self._by_slug = {s.slug: s.id for s in spheres}
        self._by_name: dict[str, int] = {}
        for s in spheres:
            self._by_name.setdefault(s.name.strip().lower(), s.id)

    def lookup(self, label: str) -> int | None:
        sphere_id = self._by_slug.get(slugify(label))
        if sphere_id is None:
            sphere_id = self._by_name.get(label.strip().lower())
        return sphere_id

    def resolve(self, labels: list[str]) -> SphereResolution:
        return resolve_labels(labels, self.lookup)
