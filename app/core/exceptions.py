# app/core/exceptions.py
"""Error taxonomy shared by the executor, the services and the API boundary."""

import re
from enum import Enum
from typing import Optional

from sqlalchemy import exc as sa_exc


class DatabaseConnectionError(ConnectionError):
    """The store is unreachable, rejected the credentials, or the database is missing."""


class LoggingError(Exception):
    """A query log entry could not be persisted. Never leaves the query logger."""


class ReportNotFoundError(KeyError):
    """No report definition is registered under the requested name."""


class QueryErrorKind(str, Enum):
    SYNTAX = "syntax"
    CONSTRAINT = "constraint"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    UNKNOWN = "unknown"


class ConstraintKind(str, Enum):
    UNIQUE = "unique"
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"


# Messages for named constraints of the CF_Tracker schema
CONSTRAINT_MESSAGES = {
    "uk_users_username": "Username already exists",
    "uk_users_email": "Email already exists",
    "chk_account_balance": "Account balance must be non-negative",
    "chk_user_role": "Invalid user role",
    "chk_goal_amount": "Goal amount must be greater than zero",
    "chk_donation_amount": "Donation amount must be greater than zero",
    "chk_campaign_status": "Invalid campaign status",
    "uk_categories_name": "Category name already exists",
}

GENERIC_MESSAGES = {
    ConstraintKind.UNIQUE: "A record with the same unique value already exists",
    ConstraintKind.CHECK: "A value is outside the allowed range",
    ConstraintKind.FOREIGN_KEY: "The record references a row that does not exist or is still referenced",
    ConstraintKind.NOT_NULL: "A required value is missing",
    QueryErrorKind.CONSTRAINT: "The change violates a database constraint",
    QueryErrorKind.SYNTAX: "The query could not be executed",
    QueryErrorKind.TIMEOUT: "The database took too long to respond",
    QueryErrorKind.CONNECTION: "The database is currently unavailable",
    QueryErrorKind.UNKNOWN: "The database reported an error",
}

# MySQL server error numbers
MYSQL_ERRNO = {
    1062: (QueryErrorKind.CONSTRAINT, ConstraintKind.UNIQUE),
    1451: (QueryErrorKind.CONSTRAINT, ConstraintKind.FOREIGN_KEY),
    1452: (QueryErrorKind.CONSTRAINT, ConstraintKind.FOREIGN_KEY),
    3819: (QueryErrorKind.CONSTRAINT, ConstraintKind.CHECK),
    1048: (QueryErrorKind.CONSTRAINT, ConstraintKind.NOT_NULL),
    1064: (QueryErrorKind.SYNTAX, None),
    1146: (QueryErrorKind.SYNTAX, None),
    1054: (QueryErrorKind.SYNTAX, None),
    1205: (QueryErrorKind.TIMEOUT, None),
    3024: (QueryErrorKind.TIMEOUT, None),
    2006: (QueryErrorKind.CONNECTION, None),
    2013: (QueryErrorKind.CONNECTION, None),
}

_CONSTRAINT_PATTERNS = [
    (ConstraintKind.UNIQUE, re.compile(r"unique constraint failed|duplicate entry", re.I)),
    (ConstraintKind.CHECK, re.compile(r"check constraint", re.I)),
    (ConstraintKind.FOREIGN_KEY, re.compile(r"foreign key constraint", re.I)),
    (ConstraintKind.NOT_NULL, re.compile(r"not null constraint failed|cannot be null", re.I)),
]

# "CHECK constraint failed: chk_x", "Check constraint 'chk_x' is violated",
# "Duplicate entry 'bob' for key 'Users.uk_users_username'"
_CONSTRAINT_NAME = re.compile(r"(?:constraint failed: |constraint '|for key ')(?:[\w]+\.)?([\w]+)", re.I)
# "UNIQUE constraint failed: Users.username"
_SQLITE_UNIQUE_COLUMN = re.compile(r"unique constraint failed: \w+\.(\w+)", re.I)


class QueryError(Exception):
    """A statement failed.

    ``str(error)`` is safe to show to an end user; the raw engine text is kept on
    ``detail`` for diagnostic logging only.
    """

    def __init__(
        self,
        kind: QueryErrorKind,
        template: str,
        constraint: Optional[ConstraintKind] = None,
        constraint_name: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.kind = kind
        self.template = template
        self.constraint = constraint
        self.constraint_name = constraint_name
        self.detail = detail
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.constraint_name:
            if self.constraint_name in CONSTRAINT_MESSAGES:
                return CONSTRAINT_MESSAGES[self.constraint_name]
            if self.constraint == ConstraintKind.UNIQUE:
                return f"{self.constraint_name.replace('_', ' ').capitalize()} already exists"
        if self.constraint is not None:
            return GENERIC_MESSAGES[self.constraint]
        return GENERIC_MESSAGES[self.kind]

    @property
    def status_code(self) -> int:
        if self.constraint == ConstraintKind.UNIQUE:
            return 409
        if self.kind == QueryErrorKind.CONSTRAINT:
            return 422
        if self.kind == QueryErrorKind.CONNECTION:
            return 503
        if self.kind == QueryErrorKind.TIMEOUT:
            return 504
        return 500

    @classmethod
    def from_dbapi(cls, error: sa_exc.SQLAlchemyError, template: str) -> "QueryError":
        """Classify a SQLAlchemy/DBAPI error into a coarse kind plus constraint subtype."""
        orig = getattr(error, "orig", None)
        message = str(orig if orig is not None else error)
        errno = getattr(orig, "errno", None)

        kind, constraint = MYSQL_ERRNO.get(errno, (None, None))
        if kind is None:
            kind, constraint = _classify_message(error, message)

        constraint_name = None
        if constraint is not None:
            match = _SQLITE_UNIQUE_COLUMN.search(message) or _CONSTRAINT_NAME.search(message)
            if match:
                constraint_name = match.group(1)

        return cls(kind, template, constraint=constraint, constraint_name=constraint_name, detail=message)


def _classify_message(error: sa_exc.SQLAlchemyError, message: str):
    lowered = message.lower()
    if isinstance(error, sa_exc.IntegrityError):
        for constraint, pattern in _CONSTRAINT_PATTERNS:
            if pattern.search(message):
                return QueryErrorKind.CONSTRAINT, constraint
        return QueryErrorKind.CONSTRAINT, None
    if "timeout" in lowered or "timed out" in lowered or "lock wait" in lowered:
        return QueryErrorKind.TIMEOUT, None
    if "gone away" in lowered or "lost connection" in lowered or "can't connect" in lowered:
        return QueryErrorKind.CONNECTION, None
    if isinstance(error, sa_exc.ProgrammingError) or "syntax error" in lowered or "no such" in lowered:
        return QueryErrorKind.SYNTAX, None
    if isinstance(error, sa_exc.DisconnectionError):
        return QueryErrorKind.CONNECTION, None
    return QueryErrorKind.UNKNOWN, None
