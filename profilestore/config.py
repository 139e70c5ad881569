"""Configuration for a profile store instance."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from profilestore.compression import DEFAULT_COMPRESSION_LEVEL
from profilestore.models import INSERT_COLUMNS

DEFAULT_STORE_NAME = "user_database"
DEFAULT_BLOB_STORE_NAME = "SQLiteDatabases"


class StoreConfig(BaseModel):
    """Settings for one ProfileStore.

    Attributes:
        name: Instance name; also the key the snapshot is stored under.
        blob_store_name: Logical store name shared by all snapshots.
        compression_level: zstd level used when saving snapshots.
        unique_columns: Columns that additionally get a UNIQUE index.
        echo: Whether SQLAlchemy should echo SQL statements.
    """

    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_STORE_NAME
    blob_store_name: str = DEFAULT_BLOB_STORE_NAME
    compression_level: int = Field(default=DEFAULT_COMPRESSION_LEVEL, ge=1, le=22)
    unique_columns: tuple[str, ...] = ()
    echo: bool = False

    @field_validator("unique_columns")
    @classmethod
    def _known_columns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [c for c in value if c not in INSERT_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown columns for unique index: {unknown}")
        return value
