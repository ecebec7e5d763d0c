# app/logging/router.py
"""API router for the query log."""

from typing import List

from fastapi import APIRouter, Depends, Query, Response

from app.core.dependencies import ContextDep
from app.logging.dao import QueryLogDAO
from app.logging.schemas import CallerStats, QueryLogRead, QueryTypeStats
from app.logging.service import QueryLogService


router = APIRouter(
    prefix="/query-log",
    tags=["query-log"],
)


# ===== DEPENDENCY INJECTION =====

def get_query_log_dao(context: ContextDep) -> QueryLogDAO:
    """Get QueryLogDAO instance."""
    return QueryLogDAO(context)


def get_query_log_service(dao: QueryLogDAO = Depends(get_query_log_dao)) -> QueryLogService:
    """Get QueryLogService instance."""
    return QueryLogService(dao)


# ===== ENDPOINTS =====

@router.get("/recent", response_model=List[QueryLogRead])
def get_recent_queries(
    response: Response,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of entries to return"),
    service: QueryLogService = Depends(get_query_log_service),
) -> List[QueryLogRead]:
    """Most recently executed statements, newest first."""
    response.headers["X-Total-Count"] = str(service.get_total_count())
    return service.get_recent_queries(limit)


@router.get("/stats/types", response_model=List[QueryTypeStats])
def get_stats_by_type(service: QueryLogService = Depends(get_query_log_service)) -> List[QueryTypeStats]:
    return service.get_stats_by_type()


@router.get("/stats/pages", response_model=List[CallerStats])
def get_stats_by_page(service: QueryLogService = Depends(get_query_log_service)) -> List[CallerStats]:
    return service.get_stats_by_page()


@router.get("/search", response_model=List[QueryLogRead])
def search_queries(
    q: str = Query(..., min_length=1, max_length=200, description="Text to look for in logged statements"),
    limit: int = Query(100, ge=1, le=1000),
    service: QueryLogService = Depends(get_query_log_service),
) -> List[QueryLogRead]:
    return service.search_queries(q, limit)
