"""Gateway identity middleware for FastAPI.

Authentication happens upstream.  The gateway forwards the authenticated
user's id and role in request headers; this middleware validates them and
sets ``request.state.auth`` for ``get_current_user``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from luna.config import Settings, get_settings
from luna.dependencies import AuthContext

logger = logging.getLogger("luna.auth")

# Paths that do not require an identity
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _unauthorized(detail: str) -> Response:
    return Response(
        content=f'{{"detail":"{detail}"}}',
        status_code=401,
        media_type="application/json",
    )


class GatewayAuthMiddleware(BaseHTTPMiddleware):
    """Populate request.state.auth from gateway identity headers."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        raw_user_id = request.headers.get(self._settings.user_id_header)
        if not raw_user_id:
            return _unauthorized("Missing user identity")

        try:
            user_id = uuid.UUID(raw_user_id.strip())
        except ValueError:
            logger.warning("Rejected malformed user id header on %s", request.url.path)
            return _unauthorized("Invalid user identity")

        role = (request.headers.get(self._settings.user_role_header) or "user").strip().lower()
        request.state.auth = AuthContext(user_id=user_id, role=role)

        return await call_next(request)
