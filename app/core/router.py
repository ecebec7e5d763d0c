# app/core/router.py
"""
Module for registering routes in the FastAPI application.
"""

from fastapi import FastAPI

from app.crowdfunding.router import campaigns_router, categories_router, donations_router, users_router
from app.logging.router import router as query_log_router
from app.reporting.router import router as report_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(report_router, prefix="/api")
    app.include_router(query_log_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(categories_router, prefix="/api")
    app.include_router(campaigns_router, prefix="/api")
    app.include_router(donations_router, prefix="/api")
