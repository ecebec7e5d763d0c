"""FastAPI application entry point for the CF Tracker query service."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from app.core.database import init_db
from app.core.exceptions import QueryError
from app.core.router import register_routes
from app.logging.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    query_exception_handler,
    request_validation_exception_handler,
)
from app.logging.middleware import SessionMiddleware

logger = logging.getLogger(__name__)


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """Build the application.

    Without ``engine`` the database is acquired from the environment; an
    unreachable store raises DatabaseConnectionError here, before any request
    is served.
    """
    app = FastAPI(
        title="CF Tracker",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    init_db(engine)

    # Assign each client a session id for query log grouping
    app.add_middleware(SessionMiddleware)

    app.add_exception_handler(QueryError, query_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok"}

    return app
