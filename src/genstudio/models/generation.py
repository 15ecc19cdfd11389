"""GenerationJob entity - simulated AI generation with lifecycle status tracking."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from genstudio.core.timezone import utcnow


class GenerationStatus(str, Enum):
    """Generation lifecycle status."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not GenerationStatus.PROCESSING


class GenerationStyle(str, Enum):
    """Styles a generation can be rendered in."""

    REALISTIC = "realistic"
    ARTISTIC = "artistic"
    CARTOON = "cartoon"
    VINTAGE = "vintage"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid generation state transition."""

    pass


class GenerationJob(SQLModel, table=True):
    """GenerationJob tracks one upload through simulated processing.

    `row_id` is the storage key; `id` is the public identifier generated by the
    API at creation time and is the only one ever exposed.
    """

    __tablename__ = "generations"  # type: ignore[assignment]

    row_id: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(max_length=64, unique=True, index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    prompt: str = Field(max_length=500)
    style: GenerationStyle
    status: GenerationStatus = Field(default=GenerationStatus.PROCESSING, index=True)
    image_path: str = Field(max_length=1024)
    result_image_path: Optional[str] = Field(default=None, max_length=1024)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    completed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )

    def mark_completed(self, result_image_path: str) -> None:
        """Transition from processing to completed.

        Args:
            result_image_path: Path of the materialized result artifact

        Raises:
            InvalidStateTransition: If current status is not processing
            ValueError: If result_image_path is empty
        """
        if self.status != GenerationStatus.PROCESSING:
            raise InvalidStateTransition(
                f"Cannot mark completed from {self.status.value}. "
                "Generation must be in processing state."
            )
        if not result_image_path:
            raise ValueError("result_image_path is required")
        self.result_image_path = result_image_path
        self.status = GenerationStatus.COMPLETED
        self.completed_at = utcnow()

    def mark_failed(self) -> None:
        """Transition from processing to failed.

        Raises:
            InvalidStateTransition: If current status is already terminal
        """
        if self.status != GenerationStatus.PROCESSING:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.status.value}."
            )
        self.result_image_path = None
        self.status = GenerationStatus.FAILED
        self.completed_at = utcnow()
