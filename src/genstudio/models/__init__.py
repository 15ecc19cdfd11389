"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from genstudio.models.generation import (
    GenerationJob,
    GenerationStatus,
    GenerationStyle,
    InvalidStateTransition,
)
from genstudio.models.user import User

__all__ = [
    "User",
    "GenerationJob",
    "GenerationStatus",
    "GenerationStyle",
    "InvalidStateTransition",
]
