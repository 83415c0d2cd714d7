"""Dependencies for API endpoints."""

from datetime import datetime
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Query
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from slotmanager.config import settings
from slotmanager.core.exceptions import AuthenticationError, PermissionDeniedError
from slotmanager.core.security import verify_token
from slotmanager.core.window import localize
from slotmanager.database import get_async_session
from slotmanager.models import User, ResourceKind
from slotmanager.services.allocation_service import AllocationService
from slotmanager.services.resource_service import ResourceService
from slotmanager.services.dashboard_service import DashboardService
from slotmanager.utils.context import set_context

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async for session in get_async_session():
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the bearer token to a user."""
    user_id = verify_token(token)
    if user_id is None or not user_id.isdigit():
        raise AuthenticationError("Could not validate credentials")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()

    if user is None:
        raise AuthenticationError("User not found")

    set_context(user_id=user.id, user_name=user.username)
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user, refusing disabled accounts."""
    if not current_user.is_active:
        raise PermissionDeniedError("Inactive user")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_active_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_dashboard_service() -> DashboardService:
    """Get dashboard service instance."""
    return DashboardService()


def get_allocation_service() -> AllocationService:
    """Get allocation service instance."""
    return AllocationService()


def get_phone_service() -> ResourceService:
    """Get phone registry service."""
    return ResourceService(ResourceKind.PHONE)


def get_ip_service() -> ResourceService:
    """Get IP registry service."""
    return ResourceService(ResourceKind.IP)


def get_as_of(
    as_of: Annotated[
        Optional[datetime],
        Query(description="Reference instant; naive values use the slot timezone"),
    ] = None,
) -> Optional[datetime]:
    """Parse the ``as_of`` query parameter used by usage views."""
    if as_of is None:
        return None
    return localize(as_of)


AsOf = Annotated[Optional[datetime], Depends(get_as_of)]
