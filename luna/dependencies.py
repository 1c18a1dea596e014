"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthContext:
    """Caller identity forwarded by the upstream gateway."""

    user_id: uuid.UUID
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_current_user(request: Request) -> AuthContext:
    """Return the caller set on ``request.state.auth`` by the gateway auth middleware."""
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


async def require_admin(user: Annotated[AuthContext, Depends(get_current_user)]) -> AuthContext:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AdminUser = Annotated[AuthContext, Depends(require_admin)]
