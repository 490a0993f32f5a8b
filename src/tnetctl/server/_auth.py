"""Bearer-token authorization for mutating endpoints."""

import secrets
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

security = HTTPBearer(auto_error=False)


def create_auth_dependency(
    token: str,
) -> Callable[[HTTPAuthorizationCredentials | None], Awaitable[None]]:
    """Create a dependency that enforces ``Authorization: Bearer <token>``.

    Args:
        token: The expected token. An empty token disables authorization.

    Returns:
        A FastAPI dependency raising HTTP 401 on a missing or wrong token.
    """

    async def require_auth(
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    ) -> None:
        if not token:
            return
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not secrets.compare_digest(credentials.credentials.encode(), token.encode()):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token",
                headers={"WWW-Authenticate": "Bearer"},
            )

    return require_auth
