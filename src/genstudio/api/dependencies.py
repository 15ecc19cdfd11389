"""FastAPI dependencies for request authentication and shared services.

This module provides reusable FastAPI dependencies for:
- Settings, Unit of Work factory, upload storage and processor (from app.state)
- Bearer token authentication resolving the current user
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from genstudio.core.config import Settings
from genstudio.models.user import User
from genstudio.services.auth import decode_access_token, extract_bearer_token
from genstudio.services.exceptions import AuthenticationError, NotFoundError
from genstudio.services.storage import UploadStorage
from genstudio.uow import UnitOfWorkFactory
from genstudio.workers.generation_processor import GenerationProcessor


def get_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.post("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.users.get_by_email(email)
    """
    return request.app.state.uow_factory


def get_storage(request: Request) -> UploadStorage:
    """Get upload storage from app state."""
    return request.app.state.storage


def get_processor(request: Request) -> GenerationProcessor:
    """Get the background generation processor from app state."""
    return request.app.state.processor


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> User:
    """Resolve the authenticated user from the Authorization header.

    Args:
        authorization: `Bearer <token>` header value
        settings: Application settings (JWT secret)
        uow_factory: UnitOfWork factory (user lookup)

    Returns:
        The user the token was issued to

    Raises:
        AuthenticationError: 401 with "Access token required", "Token expired"
            or "Invalid token"
    """
    token = extract_bearer_token(authorization)
    claims = decode_access_token(token, settings.jwt_secret)

    async with await uow_factory() as uow:
        try:
            return await uow.users.get_by_id(claims.user_id)
        except NotFoundError:
            # Signed token for a user that no longer exists
            raise AuthenticationError("Invalid token")


CurrentUser = Annotated[User, Depends(get_current_user)]
