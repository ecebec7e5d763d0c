# app/core/dependencies.py
"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import SessionLocal, get_db
from app.logging.query_logger import QueryLogger

# One writer per process; it opens its own short-lived sessions
_query_logger = QueryLogger(SessionLocal)

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]


def get_query_logger() -> QueryLogger:
    return _query_logger


def get_request_context(
    request: Request,
    session: SessionDep,
    query_logger: QueryLogger = Depends(get_query_logger),
) -> RequestContext:
    """Request context carrying the session id assigned by SessionMiddleware."""
    session_id = getattr(request.state, "session_id", None)
    return RequestContext(session, session_id=session_id, query_logger=query_logger)


ContextDep = Annotated[RequestContext, Depends(get_request_context)]
