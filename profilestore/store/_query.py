"""WHERE-clause construction for profile queries.

Filter values always travel as bound parameters. The only identifiers
interpolated into SQL text are column names taken from the fixed tables
in this module, never from caller input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple

from profilestore._dates import encode_date, encode_timestamp
from profilestore.models import COLUMNS
from profilestore.store._types import FilterLike, as_filter

DEFAULT_SORT_FIELD = "user_name"

SORTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "original_id",
        "user_name",
        "full_name",
        "is_verified",
        "posts",
        "following",
        "followers",
        "is_private",
        "is_business",
        "followed_by_you",
        "created_at",
        "updated_at",
        "last_login_at",
        "date_of_birth",
    }
)

# Columns that may be used to group rows for deduplication.
GROUPABLE_FIELDS: frozenset[str] = frozenset(c for c in COLUMNS if c != "id")


class _Condition(NamedTuple):
    key: str
    column: str
    op: str  # "eq", "gte", "lte", "like" or "search"
    encode: str = "raw"  # "raw", "flag", "timestamp" or "date"
    skip_empty: bool = False


# Evaluated in order; placeholders appear in the same order.
_CONDITIONS: tuple[_Condition, ...] = (
    _Condition("id", "id", "eq"),
    _Condition("original_id", "original_id", "eq"),
    _Condition("user_name", "user_name", "like", skip_empty=True),
    _Condition("full_name", "full_name", "like", skip_empty=True),
    _Condition("is_verified", "is_verified", "eq", "flag"),
    _Condition("is_private", "is_private", "eq", "flag"),
    _Condition("is_business", "is_business", "eq", "flag"),
    _Condition("followed_by_you", "followed_by_you", "eq", "flag"),
    _Condition("min_followers", "followers", "gte"),
    _Condition("max_followers", "followers", "lte"),
    _Condition("min_following", "following", "gte"),
    _Condition("max_following", "following", "lte"),
    _Condition("city", "city", "eq", skip_empty=True),
    _Condition("search_text", "", "search", skip_empty=True),
    _Condition("created_after", "created_at", "gte", "timestamp"),
    _Condition("created_before", "created_at", "lte", "timestamp"),
    _Condition("updated_after", "updated_at", "gte", "timestamp"),
    _Condition("updated_before", "updated_at", "lte", "timestamp"),
    _Condition("last_login_after", "last_login_at", "gte", "timestamp"),
    _Condition("last_login_before", "last_login_at", "lte", "timestamp"),
    _Condition("born_after", "date_of_birth", "gte", "date"),
    _Condition("born_before", "date_of_birth", "lte", "date"),
)

_OPERATORS = {"eq": "=", "gte": ">=", "lte": "<="}


@dataclass(frozen=True)
class WhereClause:
    """A WHERE fragment and the parameters for its placeholders.

    Attributes:
        sql: ``""`` when there are no conditions, else ``"WHERE ..."``.
        params: One value per ``?`` in ``sql``, in order.
    """

    sql: str = ""
    params: tuple[Any, ...] = ()

    def and_(self, condition: str, *params: Any) -> WhereClause:
        """Return a copy with one more AND-ed condition."""
        if self.sql:
            sql = f"{self.sql} AND {condition}"
        else:
            sql = f"WHERE {condition}"
        return WhereClause(sql, self.params + params)


def _encode(value: Any, encoding: str) -> Any:
    if encoding == "flag":
        return 1 if value else 0
    if encoding == "timestamp":
        return encode_timestamp(value)
    if encoding == "date":
        return encode_date(value)
    return value


def build_where(filters: FilterLike = None) -> WhereClause:
    """Translate a predicate set into a parameterized WHERE clause.

    Args:
        filters: A ProfileFilter, a mapping with the same keys, or None.

    Returns:
        The WHERE clause; empty when no predicate applies.
    """
    conditions = as_filter(filters)
    clauses: list[str] = []
    params: list[Any] = []

    for cond in _CONDITIONS:
        value = getattr(conditions, cond.key)
        if value is None or (cond.skip_empty and value == ""):
            continue
        if cond.op == "search":
            # Parenthesized so the OR stays out of the AND chain.
            clauses.append("(user_name LIKE ? OR full_name LIKE ?)")
            params.extend([f"%{value}%", f"%{value}%"])
        elif cond.op == "like":
            clauses.append(f"{cond.column} LIKE ?")
            params.append(f"%{value}%")
        else:
            clauses.append(f"{cond.column} {_OPERATORS[cond.op]} ?")
            params.append(_encode(value, cond.encode))

    if not clauses:
        return WhereClause()
    return WhereClause("WHERE " + " AND ".join(clauses), tuple(params))


def validate_sort_field(field: str | None) -> str:
    """Return ``field`` if it is sortable, else the default sort field.

    Invalid input is replaced rather than rejected: the value ends up
    interpolated into ORDER BY, so only allow-listed names may pass.
    """
    return field if field in SORTABLE_FIELDS else DEFAULT_SORT_FIELD


def validate_sort_order(order: str | None) -> str:
    normalized = (order or "").upper()
    return normalized if normalized in ("ASC", "DESC") else "ASC"


def validate_group_fields(fields: str | list[str] | tuple[str, ...]) -> list[str]:
    """Check deduplication grouping fields against the column allow-list.

    Raises:
        ValueError: If no field is given or any field is not a column.
    """
    names = [fields] if isinstance(fields, str) else list(fields)
    if not names:
        raise ValueError("At least one grouping field is required")
    unknown = [n for n in names if n not in GROUPABLE_FIELDS]
    if unknown:
        raise ValueError(f"Cannot group by unknown fields: {unknown}")
    return names
