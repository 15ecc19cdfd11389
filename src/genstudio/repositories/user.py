"""User repository for GenStudio backend.

Provides the credential store: creation with unique email and lookups.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from genstudio.models.user import User
from genstudio.services.exceptions import ConflictError, NotFoundError


class UserRepository:
    """Repository for User entities.

    Users are immutable after creation: there is no update or delete.
    Password hashing happens in the caller (genstudio.services.auth).
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create_user(self, email: str, password_hash: str) -> User:
        """Persist a new user.

        Args:
            email: Email address, stored exactly as given
            password_hash: bcrypt hash of the password

        Returns:
            Persisted user with generated ID

        Raises:
            ConflictError: If a user with this email already exists
        """
        if await self.get_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        user = User(email=email, password_hash=password_hash)
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Concurrent signup won the race on the unique index
            raise ConflictError("User with this email already exists") from e
        return user

    async def get_by_email(self, email: str) -> User | None:
        """Retrieve user by email (exact, case-sensitive match).

        Args:
            email: Email address

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.email == email))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> User:
        """Retrieve user by ID.

        Raises:
            NotFoundError: If no user has this ID
        """
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
