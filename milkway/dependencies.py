"""
FastAPI dependency injection helpers: JWT bearer auth resolved into an
explicit ``AuthContext`` and role gates built on top of it.

Handlers receive the context as a parameter; ownership checks happen in the
handler after the resource is loaded.
"""
import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from milkway.config import settings
from milkway.database import get_db
from milkway.models.user import User, UserRole

# auto_error=False so a missing header gets our own 401 message, not FastAPI's 403
_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    user: User
    role: UserRole

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Token expired.")
    except JWTError:
        raise _unauthorized("Invalid token.")


def _extract_user_id(payload: dict) -> uuid.UUID:
    sub = payload.get("sub")
    if sub is None:
        raise _unauthorized("Invalid token.")
    try:
        return uuid.UUID(sub)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token.")


async def resolve_token(db: AsyncSession, token: str) -> AuthContext:
    """Verify ``token`` and load its user. Raises 401 on every failure."""
    user_id = _extract_user_id(_decode_token(token))
    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("Invalid token. User not found.")
    if not user.is_active:
        raise _unauthorized("Account is deactivated.")
    # role comes from the stored user, not the claim, since the claim can be stale
    return AuthContext(user=user, role=user.role)


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access denied. No token provided.")
    return await resolve_token(db, credentials.credentials)


async def get_optional_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthContext | None:
    """Same resolution as ``get_auth_context`` but anonymous on any failure."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await resolve_token(db, credentials.credentials)
    except HTTPException:
        return None


def require_roles(*roles: UserRole):
    allowed = ", ".join(role.value for role in roles)

    async def _check_role(
        ctx: Annotated[AuthContext, Depends(get_auth_context)],
    ) -> AuthContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {allowed}",
            )
        return ctx

    return _check_role


CurrentUser = Annotated[AuthContext, Depends(get_auth_context)]
OptionalUser = Annotated[AuthContext | None, Depends(get_optional_auth_context)]
CurrentFarmer = Annotated[AuthContext, Depends(require_roles(UserRole.FARMER))]
CurrentBuyer = Annotated[AuthContext, Depends(require_roles(UserRole.BUYER))]
DbSession = Annotated[AsyncSession, Depends(get_db)]
