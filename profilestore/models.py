"""SQLModel table definitions for the profile store database.

The ``users`` table holds one row per user profile. Timestamps are kept
as engine-native text (``YYYY-MM-DD HH:MM:SS``, UTC) and flags as 0/1
integers, so rows written through raw SQL and rows read back by any
SQLite client agree on their representation.

Tables:
- users: user profile records with secondary lookup indexes
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

TABLE_NAME = "users"


class User(SQLModel, table=True):  # type: ignore[call-arg]
    """User profile record."""

    __tablename__ = TABLE_NAME
    __table_args__ = (
        sa.Index("idx_users_user_name", "user_name"),
        sa.Index("idx_users_original_id", "original_id"),
        sa.Index("idx_users_email", "email"),
        sa.Index("idx_users_created_at", "created_at"),
        sa.Index("idx_users_last_login_at", "last_login_at"),
        sa.Index("idx_users_followers", "followers"),
        # AUTOINCREMENT keeps ids of deleted rows from being handed out again.
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    original_id: int = Field(
        default=0,
        sa_column_kwargs={"server_default": sa.text("0")},
    )

    # Identity
    user_name: str | None = None
    full_name: str | None = None
    profile_url: str | None = None
    avatar_url: str | None = None
    email: str | None = None
    phone: str | None = None

    # Counters
    posts: int = Field(
        default=0,
        sa_column_kwargs={"server_default": sa.text("0")},
    )
    following: int = Field(
        default=0,
        sa_column_kwargs={"server_default": sa.text("0")},
    )
    followers: int = Field(
        default=0,
        sa_column_kwargs={"server_default": sa.text("0")},
    )
    followed_by_you: int = Field(
        default=0,
        sa_column_kwargs={"server_default": sa.text("0")},
    )

    # Free text
    biography: str | None = None
    city: str | None = None
    address: str | None = None
    external_url: str | None = None
    category_url: str | None = None

    # Flags (stored as 0/1)
    is_verified: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": sa.text("0")},
    )
    is_private: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": sa.text("0")},
    )
    is_business: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": sa.text("0")},
    )

    # Timestamps (engine-native text)
    created_at: str = Field(
        sa_column_kwargs={"server_default": sa.text("CURRENT_TIMESTAMP")},
    )
    updated_at: str = Field(
        sa_column_kwargs={"server_default": sa.text("CURRENT_TIMESTAMP")},
    )
    last_login_at: str | None = None
    date_of_birth: str | None = None


# Column order as declared on the table; rows are read and written in
# this order everywhere.
COLUMNS: tuple[str, ...] = tuple(c.name for c in User.__table__.columns)  # type: ignore[attr-defined]

# Every column except the auto-assigned primary key.
INSERT_COLUMNS: tuple[str, ...] = tuple(c for c in COLUMNS if c != "id")
