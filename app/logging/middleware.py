# app/logging/middleware.py
"""Session-id middleware: tags every request so its queries can be grouped in Query_Log."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import APPLICATION_ID, SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Reuses the client's session cookie or issues a new one.

    The id is placed on ``request.state.session_id``; it only labels log entries
    and carries no authentication meaning.
    """

    def __init__(self, app: ASGIApp, cookie_name: str = SESSION_COOKIE_NAME):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.application_id = APPLICATION_ID

    async def dispatch(self, request: Request, call_next: Callable):
        session_id = request.cookies.get(self.cookie_name)
        is_new = not session_id
        if is_new:
            session_id = uuid.uuid4().hex
        request.state.session_id = session_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if is_new:
            response.set_cookie(self.cookie_name, session_id, httponly=True, samesite="lax")

        logger.debug(
            "%s %s -> %s in %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"session_id": session_id, "application_id": self.application_id},
        )
        return response
