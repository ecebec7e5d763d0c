# app/logging/service.py
"""Service layer for the query log."""

from typing import List

from app.logging.dao import QueryLogDAO
from app.logging.schemas import CallerStats, QueryLogRead, QueryTypeStats


class QueryLogService:
    """Read-only views over Query_Log."""

    def __init__(self, dao: QueryLogDAO):
        self.dao = dao

    def get_recent_queries(self, limit: int = 50) -> List[QueryLogRead]:
        return [QueryLogRead.model_validate(row) for row in self.dao.get_recent(limit)]

    def search_queries(self, term: str, limit: int = 100) -> List[QueryLogRead]:
        if not term.strip():
            return []
        return [QueryLogRead.model_validate(row) for row in self.dao.search(term, limit)]

    def get_stats_by_type(self) -> List[QueryTypeStats]:
        return [QueryTypeStats.model_validate(row) for row in self.dao.get_stats_by_type()]

    def get_stats_by_page(self) -> List[CallerStats]:
        return [CallerStats.model_validate(row) for row in self.dao.get_stats_by_page()]

    def get_total_count(self) -> int:
        return self.dao.count()
