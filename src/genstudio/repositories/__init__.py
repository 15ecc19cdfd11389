"""Repository layer for GenStudio backend.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from genstudio.repositories.generation import GenerationJobRepository
from genstudio.repositories.user import UserRepository

__all__ = [
    "UserRepository",
    "GenerationJobRepository",
]
