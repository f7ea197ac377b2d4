"""
Auth router: registration, login and token refresh for farmers and buyers.
Issues JWT tokens with the user id as subject and a role claim.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, HTTPException, Request, status
from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from milkway.config import settings
from milkway.dependencies import CurrentUser, DbSession
from milkway.models.common import utcnow
from milkway.models.user import User, UserRole
from milkway.schemas.common import MessageResponse
from milkway.schemas.user import (
    AuthResponse,
    TokenRefreshResponse,
    UserLogin,
    UserPrivate,
    UserRegister,
)
from milkway.services.user_service import present_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
_pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return _pwd.verify(plain, hashed)


def create_access_token(user_id: uuid.UUID, role: UserRole) -> str:
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {"sub": str(user_id), "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


_INVALID_CREDENTIALS = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password"
)
_DUPLICATE_EMAIL = HTTPException(status_code=400, detail="User already exists with this email")


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: UserRegister, request: Request, db: DbSession):
    existing = (
        await db.execute(select(User.id).where(User.email == body.email))
    ).scalar_one_or_none()
    if existing:
        raise _DUPLICATE_EMAIL

    user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        role=body.role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent registration took the email after the check above
        await db.rollback()
        raise _DUPLICATE_EMAIL
    await db.refresh(user)
    logger.info("Registered %s %s", user.role.value, user.id)

    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user.id, user.role),
        user=present_user(user, base_url=str(request.base_url)),
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: UserLogin, request: Request, db: DbSession):
    user = (
        await db.execute(select(User).where(User.email == body.email))
    ).scalar_one_or_none()
    if user is None:
        raise _INVALID_CREDENTIALS
    # checked before the password so a deactivated account never gets a token
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated. Please contact support.",
        )
    if not verify_password(body.password, user.hashed_password):
        raise _INVALID_CREDENTIALS

    user.last_login = utcnow()
    await db.commit()
    await db.refresh(user)
    logger.info("Login for user %s", user.id)

    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.id, user.role),
        user=present_user(user, base_url=str(request.base_url)),
    )


@router.get("/me", response_model=UserPrivate)
async def me(ctx: CurrentUser, request: Request):
    return present_user(ctx.user, base_url=str(request.base_url))


@router.post("/refresh", response_model=TokenRefreshResponse)
async def refresh_token(ctx: CurrentUser):
    return TokenRefreshResponse(
        message="Token refreshed successfully",
        token=create_access_token(ctx.user.id, ctx.role),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(ctx: CurrentUser):
    # tokens are stateless; the client drops its copy
    return MessageResponse(message="Logged out successfully")
