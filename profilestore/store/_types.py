"""Standalone types for the store package.

Defines the record model (Profile), the partial update (ProfileUpdate),
the predicate set (ProfileFilter) and the result containers (Page,
ProfileStatistics), plus the conversions between a Profile and a row of
the ``users`` table.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

from profilestore._dates import (
    decode_date,
    decode_timestamp,
    encode_date,
    encode_timestamp,
    to_utc,
)

_TIMESTAMP_FIELDS = ("created_at", "updated_at", "last_login_at")
_FLAG_FIELDS = ("is_verified", "is_private", "is_business")
_TEXT_FIELDS = (
    "user_name",
    "full_name",
    "profile_url",
    "avatar_url",
    "email",
    "phone",
    "biography",
    "city",
    "address",
    "external_url",
    "category_url",
)


class Profile(BaseModel):
    """A user profile record.

    ``id`` is assigned by the store on insert and never changes. Timestamps
    are aware UTC datetimes with whole-second precision; naive inputs are
    taken as UTC.
    """

    id: int | None = None
    original_id: int = 0
    user_name: str = ""
    full_name: str = ""
    profile_url: str = ""
    avatar_url: str = ""
    is_verified: bool = False
    posts: int = 0
    email: str = ""
    phone: str = ""
    following: int = 0
    followers: int = 0
    biography: str = ""
    city: str = ""
    address: str = ""
    is_private: bool = False
    is_business: bool = False
    external_url: str = ""
    category_url: str = ""
    followed_by_you: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login_at: datetime | None = None
    date_of_birth: date | None = None

    @field_validator(*_TIMESTAMP_FIELDS)
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class ProfileUpdate(BaseModel):
    """A partial update of a profile.

    Only the fields the caller actually set take part in the update; a
    field explicitly set to None writes NULL.
    """

    model_config = ConfigDict(extra="forbid")

    original_id: int | None = None
    user_name: str | None = None
    full_name: str | None = None
    profile_url: str | None = None
    avatar_url: str | None = None
    is_verified: bool | None = None
    posts: int | None = None
    email: str | None = None
    phone: str | None = None
    following: int | None = None
    followers: int | None = None
    biography: str | None = None
    city: str | None = None
    address: str | None = None
    is_private: bool | None = None
    is_business: bool | None = None
    external_url: str | None = None
    category_url: str | None = None
    followed_by_you: int | None = None
    last_login_at: datetime | None = None
    date_of_birth: date | None = None

    def changes(self) -> dict[str, Any]:
        """Column values for the fields that were set, in declaration order."""
        return {
            name: encode_value(name, getattr(self, name))
            for name in type(self).model_fields
            if name in self.model_fields_set
        }


class ProfileFilter(BaseModel):
    """Predicate set for queries and statistics.

    Absent keys (None) impose no constraint. Empty strings are ignored for
    the text keys; ``False`` and ``0`` are significant. ``followed_by_you``
    is stored as 0/1 and matched like the boolean flags.
    """

    model_config = ConfigDict(extra="forbid")

    # Exact match
    id: int | None = None
    original_id: int | None = None
    is_verified: bool | None = None
    is_private: bool | None = None
    is_business: bool | None = None
    followed_by_you: int | None = None
    city: str | None = None

    # Substring match
    user_name: str | None = None
    full_name: str | None = None
    search_text: str | None = None

    # Ranges
    min_followers: int | None = None
    max_followers: int | None = None
    min_following: int | None = None
    max_following: int | None = None

    # Date ranges
    created_after: datetime | None = None
    created_before: datetime | None = None
    updated_after: datetime | None = None
    updated_before: datetime | None = None
    last_login_after: datetime | None = None
    last_login_before: datetime | None = None
    born_after: date | None = None
    born_before: date | None = None


FilterLike = ProfileFilter | Mapping[str, Any] | None


def as_filter(filters: FilterLike) -> ProfileFilter:
    if filters is None:
        return ProfileFilter()
    if isinstance(filters, ProfileFilter):
        return filters
    return ProfileFilter.model_validate(dict(filters))


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """Paginated result set.

    Attributes:
        items: List of items for this page.
        total: Total number of items matching the query (all pages).
        page: 1-indexed page number that was requested.
        page_size: Maximum items per page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def has_more(self) -> bool:
        """Check if there are more items after this page."""
        return self.offset + len(self.items) < self.total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "data": [
                item.model_dump(mode="json")
                if isinstance(item, BaseModel)
                else item
                for item in self.items
            ],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps(self.to_dict())


@dataclass
class ProfileStatistics:
    """Aggregate statistics over a filtered set of profiles.

    Attributes:
        total: Number of matching profiles.
        verified_count: Matching profiles with the verified flag.
        business_count: Matching business accounts.
        avg_followers: Mean follower count (0 when nothing matches).
        max_followers: Largest follower count.
        min_followers: Smallest follower count.
        active_today: Profiles whose last login is in the current UTC day.
        new_this_week: Profiles created within the trailing 7 days.
    """

    total: int = 0
    verified_count: int = 0
    business_count: int = 0
    avg_followers: float = 0.0
    max_followers: int = 0
    min_followers: int = 0
    active_today: int = 0
    new_this_week: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total": self.total,
            "verified_count": self.verified_count,
            "business_count": self.business_count,
            "avg_followers": self.avg_followers,
            "max_followers": self.max_followers,
            "min_followers": self.min_followers,
            "active_today": self.active_today,
            "new_this_week": self.new_this_week,
        }


# --- Row conversion ---


def encode_value(column: str, value: Any) -> Any:
    """Convert a Python attribute value to its stored form."""
    if value is None:
        return None
    if column in _FLAG_FIELDS or column == "followed_by_you":
        return 1 if value else 0
    if column in _TIMESTAMP_FIELDS:
        return encode_timestamp(value)
    if column == "date_of_birth":
        return encode_date(value)
    return value


def profile_to_row(profile: Profile, columns: Sequence[str]) -> list[Any]:
    """Stored values of ``profile`` for the given columns, in order."""
    return [encode_value(c, getattr(profile, c)) for c in columns]


def profile_from_row(columns: Sequence[str], row: Sequence[Any]) -> Profile:
    """Build a Profile from a ``users`` row.

    NULL text columns read back as empty strings and NULL counters as 0,
    matching what the store writes for missing attributes.
    """
    values = dict(zip(columns, row))
    data: dict[str, Any] = {}
    for column, value in values.items():
        if column in _FLAG_FIELDS:
            data[column] = bool(value)
        elif column in _TIMESTAMP_FIELDS:
            data[column] = decode_timestamp(value)
        elif column == "date_of_birth":
            data[column] = decode_date(value)
        elif column in _TEXT_FIELDS:
            data[column] = value if value is not None else ""
        elif value is None and column != "id":
            data[column] = 0
        else:
            data[column] = value
    return Profile.model_validate(data)
