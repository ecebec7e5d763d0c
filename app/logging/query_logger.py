# app/logging/query_logger.py
"""Best-effort writer for the Query_Log table."""

import logging
import threading
from typing import Callable

from sqlalchemy.orm import Session

from app.core.exceptions import LoggingError
from app.logging.models import QUERY_LOG_TABLE, QueryLog
from app.logging.schemas import QueryLogEntry

logger = logging.getLogger(__name__)


def infer_query_type(query_text: str) -> str:
    """First whitespace-delimited token of the trimmed statement, upper-cased."""
    tokens = query_text.strip().split(None, 1)
    return tokens[0].upper() if tokens else ""


def targets_query_log(query_text: str) -> bool:
    return QUERY_LOG_TABLE.lower() in query_text.lower()


class QueryLogger:
    """Appends one Query_Log row per executed statement.

    ``log`` never raises. Statements that mention the log table are skipped so that
    reading or writing the log cannot grow it recursively. Failed writes are counted
    and reported on this module's logger so an outage of the log is visible to
    operators without disturbing the statement being logged.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def failure_count(self) -> int:
        return self._failures

    def log(self, entry: QueryLogEntry) -> None:
        if targets_query_log(entry.query_text):
            return
        if not entry.inferred_type:
            entry = entry.model_copy(update={"inferred_type": infer_query_type(entry.query_text)})

        try:
            self._write(entry)
        except LoggingError as e:
            with self._lock:
                self._failures += 1
            logger.warning(
                "Query logging failed",
                extra={
                    "query_type": entry.inferred_type,
                    "page_name": entry.caller_label,
                    "failure_count": self._failures,
                    "error": str(e.__cause__ or e),
                },
            )

    def _write(self, entry: QueryLogEntry) -> None:
        try:
            with self.session_factory() as session:
                session.add(QueryLog(**entry.model_dump()))
                session.commit()
        except Exception as e:
            raise LoggingError("could not persist query log entry") from e
