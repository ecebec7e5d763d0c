# app/logging/dao.py
"""Data access for reading the query log.

These statements name the log table, so the query logger never records them.
"""

from typing import Any, Dict, List

from app.core.context import RequestContext
from app.query import FilterBuilder, QueryExecutor

_LOG_COLUMNS = """
    SELECT log_id AS id,
           query_text,
           query_type AS inferred_type,
           page_name AS caller_label,
           execution_time AS elapsed_seconds,
           rows_affected AS affected_rows,
           user_session AS session_id,
           executed_at
    FROM Query_Log
"""


class QueryLogDAO:
    caller = "sql_features"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        builder = FilterBuilder(_LOG_COLUMNS).order_by("executed_at DESC, log_id DESC").paginate(limit)
        template, params = builder.render()
        return self.executor.fetch_all(template, params, caller=self.caller)

    def search(self, term: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Logged statements whose text contains ``term`` literally (case-insensitive)."""
        builder = FilterBuilder(_LOG_COLUMNS)
        builder.where_contains(["query_text"], "search", term)
        builder.order_by("executed_at DESC, log_id DESC").paginate(limit)
        template, params = builder.render()
        return self.executor.fetch_all(template, params, caller=self.caller)

    def get_stats_by_type(self) -> List[Dict[str, Any]]:
        query = """
            SELECT query_type,
                   COUNT(*) AS query_count,
                   AVG(execution_time) AS avg_execution_time,
                   MAX(execution_time) AS max_execution_time,
                   MIN(execution_time) AS min_execution_time,
                   SUM(execution_time) AS total_execution_time,
                   SUM(rows_affected) AS total_rows_affected
            FROM Query_Log
            GROUP BY query_type
            ORDER BY query_count DESC, query_type
        """
        return self.executor.fetch_all(query, caller=self.caller)

    def get_stats_by_page(self) -> List[Dict[str, Any]]:
        query = """
            SELECT page_name,
                   COUNT(*) AS query_count,
                   COUNT(DISTINCT query_type) AS unique_query_types
            FROM Query_Log
            GROUP BY page_name
            ORDER BY query_count DESC, page_name
        """
        return self.executor.fetch_all(query, caller=self.caller)

    def count(self) -> int:
        return self.executor.execute("SELECT COUNT(*) AS total FROM Query_Log", caller=self.caller).scalar() or 0
