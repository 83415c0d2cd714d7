"""Authentication endpoints: login, token refresh, password change."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from slotmanager.api.deps import CurrentUser, DbSession
from slotmanager.config import settings
from slotmanager.core.exceptions import (
    AuthenticationError,
    BadRequestError,
    PermissionDeniedError,
)
from slotmanager.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_password,
    verify_token,
)
from slotmanager.middleware.rate_limit import limiter
from slotmanager.models import User
from slotmanager.schemas import (
    PasswordChange,
    RefreshTokenRequest,
    ResponseMessage,
    Token,
    UserLogin,
    UserResponse,
)
from slotmanager.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

LOGIN_LIMIT = f"{settings.LOGIN_RATE_LIMIT_PER_MINUTE}/minute"


async def _authenticate(db: AsyncSession, username: str, password: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt", extra={"username": username})
        raise AuthenticationError("Incorrect username or password")

    if not user.is_active:
        raise PermissionDeniedError("Inactive user")

    logger.info("User logged in", extra={"user_id": user.id})
    return user


def _issue_tokens(user: User) -> Token:
    return Token(
        access_token=create_access_token(subject=user.id),
        refresh_token=create_refresh_token(subject=user.id),
        token_type="bearer",
    )


@router.post("/login", response_model=Token)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: DbSession,
) -> Token:
    """
    OAuth2 compatible token login.

    Get an access token for future requests using username and password.
    """
    user = await _authenticate(db, form_data.username, form_data.password)
    return _issue_tokens(user)


@router.post("/login/json", response_model=Token)
@limiter.limit(LOGIN_LIMIT)
async def login_json(
    request: Request,
    user_login: UserLogin,
    db: DbSession,
) -> Token:
    """JSON-based login, alternative to the OAuth2 form flow."""
    user = await _authenticate(db, user_login.username, user_login.password)
    return _issue_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    refresh_request: RefreshTokenRequest,
    db: DbSession,
) -> Token:
    """Exchange a valid refresh token for a new token pair."""
    user_id = verify_token(refresh_request.refresh_token, token_type=REFRESH_TOKEN)
    if user_id is None or not user_id.isdigit():
        raise AuthenticationError("Invalid refresh token")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()

    if user is None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise PermissionDeniedError("Inactive user")

    return _issue_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser) -> User:
    """Return the authenticated user's profile."""
    return current_user


@router.post("/change-password", response_model=ResponseMessage)
async def change_password(
    password_change: PasswordChange,
    current_user: CurrentUser,
    db: DbSession,
) -> ResponseMessage:
    """
    Change the authenticated user's password.

    The current password must be supplied and the new one must be at least
    six characters long.
    """
    if not verify_password(
        password_change.current_password, current_user.hashed_password
    ):
        raise BadRequestError("Current password is incorrect")

    current_user.hashed_password = get_password_hash(password_change.new_password)
    db.add(current_user)
    await db.commit()

    logger.info("Password changed", extra={"user_id": current_user.id})
    return ResponseMessage(message="Password updated successfully")
