# app/core/context.py
"""Request-scoped context passed to the executor and every service call."""

import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import QueryError

if TYPE_CHECKING:
    from app.logging.query_logger import QueryLogger
    from app.logging.schemas import QueryLogEntry


class RequestContext:
    """Carries the request's database session, its session identifier and the caller label.

    Query log entries for statements run inside ``transaction()`` are held back and
    written once the transaction has committed or rolled back, so the log writer never
    shares a unit of work with the statements it records.
    """

    def __init__(
        self,
        session: Session,
        session_id: Optional[str] = None,
        caller: str = "",
        query_logger: Optional["QueryLogger"] = None,
    ):
        self.session = session
        self.session_id = session_id or uuid.uuid4().hex
        self.caller = caller
        self.query_logger = query_logger
        self._in_transaction = False
        self._pending_log: List["QueryLogEntry"] = []

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def for_caller(self, caller: str) -> "RequestContext":
        """Same session and session id, different caller label."""
        return RequestContext(self.session, self.session_id, caller, self.query_logger)

    def record_query(self, entry: "QueryLogEntry") -> None:
        if self.query_logger is None:
            return
        if self._in_transaction:
            self._pending_log.append(entry)
        else:
            self.query_logger.log(entry)

    @contextmanager
    def transaction(self) -> Iterator["RequestContext"]:
        """Run the enclosed statements as one unit: commit on success, roll back on any error.

        A failed commit is rolled back and raised as QueryError.

        Nested use joins the outer transaction.
        """
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            yield self
            try:
                self.session.commit()
            except SQLAlchemyError as e:
                raise QueryError.from_dbapi(e, "COMMIT") from e
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._in_transaction = False
            pending, self._pending_log = self._pending_log, []
            for entry in pending:
                self.record_query(entry)
