"""Bearer-token authentication for campaign owners."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Header, HTTPException, Request, status

if TYPE_CHECKING:
    from vouchflow.containers import AppContainer


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> str:
    """Resolve the caller's user id from an ``Authorization: Bearer`` header."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    container: AppContainer = request.app.state.container
    user_id = container.identity_provider.resolve_user_id(token.strip())
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user_id
