"""Error classification for the profile store.

SQLite reports failures as free-text messages. This module translates
them into a closed set of error kinds with a structured details payload,
so that a failure can be reproduced from a log line alone: every
classified error carries the SQL text and the bound parameters.

Error Kinds:
- UNIQUE_CONSTRAINT_FAILED: a UNIQUE index rejected the row
- NULL_CONSTRAINT_FAILED: a NOT NULL column received NULL
- FOREIGN_KEY_CONSTRAINT_FAILED: a foreign key check failed
- TABLE_NOT_EXIST: the statement referenced a missing table
- DATA_TYPE_MISMATCH: a value could not be stored in its column
- INSERTION_FAILED_NO_ID: an insert succeeded without yielding a row id
- NOT_INITIALIZED: the store was used before initialize() or after close()
- UNKNOWN_ERROR: anything else

The translation table below is the only place that knows the engine's
message wording.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

import sqlalchemy as sa


class ErrorKind(str, Enum):
    """Closed taxonomy of store failures."""

    UNIQUE_CONSTRAINT = "UNIQUE_CONSTRAINT_FAILED"
    NOT_NULL_CONSTRAINT = "NULL_CONSTRAINT_FAILED"
    FOREIGN_KEY_CONSTRAINT = "FOREIGN_KEY_CONSTRAINT_FAILED"
    MISSING_TABLE = "TABLE_NOT_EXIST"
    TYPE_MISMATCH = "DATA_TYPE_MISMATCH"
    INSERTION_WITHOUT_ID = "INSERTION_FAILED_NO_ID"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    UNKNOWN = "UNKNOWN_ERROR"


# Engine message substrings, in priority order.
_MESSAGE_KINDS: tuple[tuple[str, ErrorKind], ...] = (
    ("UNIQUE constraint failed", ErrorKind.UNIQUE_CONSTRAINT),
    ("NOT NULL constraint failed", ErrorKind.NOT_NULL_CONSTRAINT),
    ("FOREIGN KEY constraint failed", ErrorKind.FOREIGN_KEY_CONSTRAINT),
    ("no such table", ErrorKind.MISSING_TABLE),
    ("datatype mismatch", ErrorKind.TYPE_MISMATCH),
)

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(\w+)")
_NOT_NULL_RE = re.compile(r"NOT NULL constraint failed: (?:\w+\.)?(\w+)")
_NO_TABLE_RE = re.compile(r"no such table: (?:\w+\.)?(\w+)")
_MISMATCH_COLUMN_RE = re.compile(r"column (?:\w+\.)?(\w+)")
_INSERT_COLUMNS_RE = re.compile(
    r"INSERT\s+INTO\s+\w+\s*\(([^)]*)\)", re.IGNORECASE
)
_SET_COLUMN_RE = re.compile(r"(\w+)\s*=\s*\?")
_UPDATE_SET_RE = re.compile(
    r"UPDATE\s+\w+\s+SET\s+(.*?)(?:\s+WHERE\s|$)", re.IGNORECASE | re.DOTALL
)

UNKNOWN_COLUMN = "unknown_column"
UNKNOWN_VALUE = "unknown_value"


@dataclass
class ClassifiedError:
    """A taxonomy-tagged description of a failed store operation.

    Attributes:
        kind: The error kind.
        message: The raw engine message (or a description for store-level
            failures such as a missing row id).
        details: Structured context. Always contains ``sql`` and
            ``params``; kind-specific keys are ``column``, ``value``,
            ``table`` and ``expected_type``.
    """

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def column(self) -> str | None:
        return self.details.get("column")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps(self.to_dict(), default=str)


class ProfileStoreError(Exception):
    """Base class for profile store failures."""


class StoreOperationError(ProfileStoreError):
    """Raised when a statement fails inside the engine.

    Attributes:
        error: The classified description of the failure.
    """

    def __init__(self, error: ClassifiedError) -> None:
        self.error = error
        super().__init__(self._format_message())

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def _format_message(self) -> str:
        parts = [f"{self.error.kind.value}: {self.error.message}"]
        sql = self.error.details.get("sql")
        if sql:
            parts.append(f"SQL: {' '.join(sql.split())}")
        params = self.error.details.get("params")
        if params:
            parts.append(f"Params: {params}")
        return "\n".join(parts)


class NotInitializedError(StoreOperationError):
    """Raised when the store is used before initialize() or after close()."""

    def __init__(self, store_name: str) -> None:
        super().__init__(
            ClassifiedError(
                kind=ErrorKind.NOT_INITIALIZED,
                message=f"Database '{store_name}' is not initialized",
                details={"store": store_name, "sql": "", "params": []},
            )
        )


def normalize_params(params: Sequence[Any] | None) -> list[Any]:
    """Render bound parameters in a stable, log-friendly form.

    Datetimes and dates become ISO text, ``None`` becomes the explicit
    marker ``"NULL"`` and bytes become hex.
    """
    normalized: list[Any] = []
    for value in params or ():
        if value is None:
            normalized.append("NULL")
        elif isinstance(value, (datetime, date)):
            normalized.append(value.isoformat())
        elif isinstance(value, (bytes, bytearray, memoryview)):
            normalized.append(bytes(value).hex())
        else:
            normalized.append(value)
    return normalized


def bound_columns(sql: str) -> list[str]:
    """Column names that the leading placeholders of a statement bind to.

    Understands ``INSERT INTO t (a, b) VALUES (?, ?)`` and
    ``UPDATE t SET a = ?, b = ? WHERE ...``; returns an empty list for
    anything else.
    """
    match = _INSERT_COLUMNS_RE.search(sql)
    if match:
        return [c.strip() for c in match.group(1).split(",") if c.strip()]
    match = _UPDATE_SET_RE.search(sql)
    if match:
        return _SET_COLUMN_RE.findall(match.group(1))
    return []


def _resolve_value(column: str, sql: str, params: Sequence[Any]) -> Any:
    columns = bound_columns(sql)
    if column in columns:
        index = columns.index(column)
        if index < len(params):
            return params[index]
    return UNKNOWN_VALUE


def _expected_type(message: str) -> str:
    for type_name in ("INTEGER", "TEXT", "REAL"):
        if type_name in message:
            return type_name
    return "unknown"


def classify_engine_error(
    message: str,
    sql: str = "",
    params: Sequence[Any] | None = None,
) -> ClassifiedError:
    """Classify a raw engine failure message.

    Args:
        message: The engine's error text.
        sql: The statement that failed.
        params: The parameters bound to the statement.

    Returns:
        A ClassifiedError whose details include the SQL text and the
        normalized parameter list.
    """
    params = list(params or ())
    kind = next(
        (k for needle, k in _MESSAGE_KINDS if needle in message),
        ErrorKind.UNKNOWN,
    )

    details: dict[str, Any] = {}
    if kind is ErrorKind.UNIQUE_CONSTRAINT:
        match = _UNIQUE_RE.search(message)
        column = match.group(1) if match else UNKNOWN_COLUMN
        details["column"] = column
        details["value"] = _resolve_value(column, sql, params)
    elif kind is ErrorKind.NOT_NULL_CONSTRAINT:
        match = _NOT_NULL_RE.search(message)
        details["column"] = match.group(1) if match else UNKNOWN_COLUMN
    elif kind is ErrorKind.MISSING_TABLE:
        match = _NO_TABLE_RE.search(message)
        if match:
            details["table"] = match.group(1)
    elif kind is ErrorKind.TYPE_MISMATCH:
        match = _MISMATCH_COLUMN_RE.search(message)
        details["column"] = match.group(1) if match else UNKNOWN_COLUMN
        details["expected_type"] = _expected_type(message)

    details["sql"] = sql
    details["params"] = normalize_params(params)
    return ClassifiedError(kind=kind, message=message, details=details)


def classify_exception(
    exc: BaseException,
    sql: str = "",
    params: Sequence[Any] | None = None,
) -> ClassifiedError:
    """Classify an exception raised by the engine boundary.

    SQLAlchemy wraps driver exceptions in ``DBAPIError``; the driver's own
    message is the one that carries the engine wording.
    """
    if isinstance(exc, sa.exc.DBAPIError) and exc.orig is not None:
        message = str(exc.orig)
    else:
        message = str(exc)
    error = classify_engine_error(message, sql, params)
    if error.kind is ErrorKind.UNKNOWN:
        error.details["exception"] = type(exc).__name__
    return error
