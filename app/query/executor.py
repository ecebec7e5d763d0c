# app/query/executor.py
"""Executes parameterized SQL for every page and report, and feeds the query log."""

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Integer, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from app.core.context import RequestContext
from app.core.exceptions import QueryError
from app.logging.query_logger import infer_query_type
from app.logging.schemas import QueryLogEntry

logger = logging.getLogger(__name__)

# Placeholders that always carry integers; some drivers reject string-typed LIMIT values
INTEGER_PARAMS = frozenset({"limit", "offset"})

READ_ONLY_TYPES = frozenset({"SELECT", "WITH", "SHOW", "DESCRIBE", "EXPLAIN"})


class QueryResult:
    """Rows plus execution metadata for one statement."""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        rowcount: int,
        elapsed_seconds: float,
        query_type: str,
        last_insert_id: Optional[int] = None,
        columns: Optional[List[str]] = None,
    ):
        self.rows = rows
        self.columns = columns or (list(rows[0].keys()) if rows else [])
        self.rowcount = rowcount
        self.elapsed_seconds = elapsed_seconds
        self.query_type = query_type
        self.last_insert_id = last_insert_id

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        row = self.first()
        return next(iter(row.values())) if row else None

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


def normalize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Accept ``{":name": v}`` as well as ``{"name": v}``."""
    if not params:
        return {}
    return {key.lstrip(":"): value for key, value in params.items()}


class QueryExecutor:
    """Runs statements on the context's session.

    Values only ever travel as bound parameters. Outside ``context.transaction()``
    write statements are committed straight away; inside it the transaction owner
    decides.
    """

    def __init__(self, context: RequestContext):
        self.context = context

    def execute(
        self,
        template: str,
        params: Optional[Mapping[str, Any]] = None,
        caller: Optional[str] = None,
        query_type: Optional[str] = None,
        int_params: Iterable[str] = (),
    ) -> QueryResult:
        bound = normalize_params(params)
        integer_names = [name for name in INTEGER_PARAMS.union(int_params) if name in bound]
        for name in integer_names:
            if bound[name] is not None:
                bound[name] = int(bound[name])
        query_type = (query_type or infer_query_type(template)).upper()
        statement = self._prepare(template, integer_names)
        session = self.context.session

        start_time = time.perf_counter()
        try:
            result = session.execute(statement, bound)
            last_insert_id = None
            columns = None
            if result.returns_rows:
                columns = list(result.keys())
                rows = [dict(row._mapping) for row in result]
                rowcount = len(rows)
            else:
                rows = []
                rowcount = max(result.rowcount or 0, 0)
                if query_type == "INSERT":
                    last_insert_id = result.lastrowid
            elapsed = time.perf_counter() - start_time
            if not self.context.in_transaction and query_type not in READ_ONLY_TYPES:
                session.commit()
        except SQLAlchemyError as e:
            if not self.context.in_transaction:
                session.rollback()
            error = QueryError.from_dbapi(e, template)
            logger.error(
                "Query Error: %s | Query: %s",
                error.detail,
                " ".join(template.split()),
                extra={"kind": error.kind.value, "page_name": caller or self.context.caller},
            )
            raise error from e

        self.context.record_query(
            QueryLogEntry(
                query_text=template,
                inferred_type=query_type,
                caller_label=caller or self.context.caller,
                elapsed_seconds=elapsed,
                affected_rows=rowcount,
                session_id=self.context.session_id,
            )
        )
        return QueryResult(rows, rowcount, elapsed, query_type, last_insert_id, columns)

    def fetch_all(self, template: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> List[Dict[str, Any]]:
        return self.execute(template, params, **kwargs).rows

    def fetch_one(self, template: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> Optional[Dict[str, Any]]:
        return self.execute(template, params, **kwargs).first()

    @staticmethod
    def _prepare(template: str, integer_names: List[str]):
        statement = text(template)
        if integer_names:
            statement = statement.bindparams(*[bindparam(name, type_=Integer) for name in integer_names])
        return statement
