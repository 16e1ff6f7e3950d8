from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Query


def apply_search(query: Query, search: str | None, columns) -> Query:
    if not search:
        return query
    term = f"%{search.strip().lower()}%"
    return query.filter(or_(*[c.ilike(term) for c in columns]))


def apply_sort(query: Query, sortable: dict, sort: str | None, direction: str | None, default: str = "created_at") -> Query:
    """Sort by a whitelisted column; unknown names fall back to `default`."""
    column = sortable.get(sort or default, sortable[default])
    order = asc if (direction or "desc").lower() == "asc" else desc
    return query.order_by(order(column))
