"""Account API endpoints.

This module implements:
- POST /api/auth/signup - Create an account and return a bearer token
- POST /api/auth/login - Exchange email and password for a bearer token
- GET /api/auth/me - Profile of the token's owner
"""

import re
from datetime import datetime, timedelta

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from genstudio.api.dependencies import CurrentUser, get_settings, get_uow_factory
from genstudio.core.config import Settings
from genstudio.models.user import User
from genstudio.services.auth import create_access_token, hash_password, verify_password
from genstudio.services.exceptions import AuthenticationError, ConflictError

logger = structlog.get_logger()
router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _validate_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value


# Request/Response Models


class SignupRequest(BaseModel):
    """Request model for account creation."""

    email: str = Field(..., description="Email address (case-sensitive)", max_length=255)
    password: str = Field(..., description="Plaintext password, at least 6 characters")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 6 characters long")
        return v


class LoginRequest(BaseModel):
    """Request model for login."""

    email: str = Field(..., description="Email address used at signup", max_length=255)
    password: str = Field(..., description="Account password")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserDTO(BaseModel):
    """Public view of a user. Never includes the password hash."""

    id: int
    email: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserDTO":
        return cls(id=user.id, email=user.email, created_at=user.created_at)  # type: ignore[arg-type]


class AuthData(BaseModel):
    user: UserDTO
    token: str


class AuthResponse(BaseModel):
    """Response model for signup and login."""

    success: bool = True
    message: str
    data: AuthData


class ProfileData(BaseModel):
    user: UserDTO


class ProfileResponse(BaseModel):
    """Response model for the current user's profile."""

    success: bool = True
    data: ProfileData


def _issue_token(user: User, settings: Settings) -> str:
    return create_access_token(
        user_id=user.id,  # type: ignore[arg-type]
        email=user.email,
        secret=settings.jwt_secret,
        expires_in=timedelta(days=settings.jwt_expires_days),
    )


# API Endpoints


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    uow_factory=Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Create an account.

    Raises:
        ConflictError 400: Email already registered
        ValidationError 400: Invalid email format or short password
    """
    async with await uow_factory() as uow:
        if await uow.users.get_by_email(request.email) is not None:
            logger.info("auth.signup_duplicate_email")
            raise ConflictError(
                "User with this email already exists", status_code=status.HTTP_400_BAD_REQUEST
            )

        password_hash = await hash_password(request.password, settings.bcrypt_rounds)

        try:
            user = await uow.users.create_user(request.email, password_hash)
        except ConflictError as e:
            raise ConflictError(e.message, status_code=status.HTTP_400_BAD_REQUEST) from e

    logger.info("auth.signup_succeeded", user_id=user.id)

    return AuthResponse(
        message="User created successfully",
        data=AuthData(user=UserDTO.from_user(user), token=_issue_token(user, settings)),
    )


@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def login(
    request: LoginRequest,
    uow_factory=Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Exchange credentials for a token.

    Unknown email and wrong password produce the same 401 message.
    """
    async with await uow_factory() as uow:
        user = await uow.users.get_by_email(request.email)

    if user is None or not await verify_password(request.password, user.password_hash):
        logger.info("auth.login_failed")
        raise AuthenticationError("Invalid email or password")

    logger.info("auth.login_succeeded", user_id=user.id)

    return AuthResponse(
        message="Login successful",
        data=AuthData(user=UserDTO.from_user(user), token=_issue_token(user, settings)),
    )


@router.get("/me", response_model=ProfileResponse, status_code=status.HTTP_200_OK)
async def me(current_user: CurrentUser) -> ProfileResponse:
    """Return the profile of the token's owner."""
    return ProfileResponse(data=ProfileData(user=UserDTO.from_user(current_user)))
