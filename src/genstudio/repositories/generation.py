"""GenerationJob repository for GenStudio backend.

Provides the job record store: creation in `processing`, owner-scoped
listing, and the single terminal status write performed by the processor.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from genstudio.models.generation import (
    GenerationJob,
    GenerationStatus,
    GenerationStyle,
)
from genstudio.services.exceptions import ConflictError, NotFoundError


class GenerationJobRepository:
    """Repository for GenerationJob entities.

    Methods:
    - create_job: Persist a new job in processing state
    - get_by_id: Retrieve job by public ID
    - list_by_user: Newest-first jobs of one owner
    - count_by_user: Total jobs of one owner
    - update_status: Terminal status write (completed/failed)
    - fail_orphaned_jobs: Fail jobs left processing by a previous process
    - delete: Storage-level removal (not part of the job lifecycle)
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create_job(
        self,
        job_id: str,
        user_id: int,
        prompt: str,
        style: GenerationStyle,
        image_path: str,
    ) -> GenerationJob:
        """Persist new generation job in processing state.

        Args:
            job_id: Public job identifier generated by the caller
            user_id: Owner's user ID
            prompt: Validated prompt text
            style: Validated style
            image_path: Path of the already-stored upload

        Returns:
            Persisted job

        Raises:
            ConflictError: If a job with job_id already exists
        """
        job = GenerationJob(
            id=job_id,
            user_id=user_id,
            prompt=prompt,
            style=style,
            image_path=image_path,
            status=GenerationStatus.PROCESSING,
        )
        self.session.add(job)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError("Generation ID conflict") from e
        return job

    async def get_by_id(self, job_id: str) -> GenerationJob:
        """Retrieve generation job by public ID.

        Raises:
            NotFoundError: If the job does not exist
        """
        result = await self.session.execute(
            select(GenerationJob).where(GenerationJob.id == job_id)  # type: ignore[arg-type]
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("Generation not found")
        return job

    async def list_by_user(self, user_id: int, limit: int = 5) -> list[GenerationJob]:
        """Retrieve a user's most recent jobs.

        Args:
            user_id: Owner's user ID
            limit: Maximum number of jobs to return (already clamped by the caller)

        Returns:
            Jobs ordered by creation time (newest first)
        """
        result = await self.session.execute(
            select(GenerationJob)
            .where(GenerationJob.user_id == user_id)  # type: ignore[arg-type]
            .order_by(
                GenerationJob.created_at.desc(),  # type: ignore[attr-defined]
                GenerationJob.row_id.desc(),  # type: ignore[union-attr]
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_user(self, user_id: int) -> int:
        """Count all jobs owned by a user."""
        result = await self.session.execute(
            select(func.count())
            .select_from(GenerationJob)
            .where(GenerationJob.user_id == user_id)  # type: ignore[arg-type]
        )
        return int(result.scalar_one())

    async def update_status(
        self,
        job_id: str,
        status: GenerationStatus,
        result_path: str | None = None,
    ) -> GenerationJob:
        """Write a job's terminal status.

        Args:
            job_id: Public job identifier
            status: COMPLETED or FAILED
            result_path: Result artifact path (required for COMPLETED only)

        Returns:
            Updated job

        Raises:
            NotFoundError: If the job no longer exists
            InvalidStateTransition: If the job is already terminal
            ValueError: If status is not terminal or result_path does not match it
        """
        if status == GenerationStatus.PROCESSING:
            raise ValueError("update_status only accepts terminal statuses")
        if status == GenerationStatus.FAILED and result_path is not None:
            raise ValueError("Failed generations cannot have a result path")

        job = await self.get_by_id(job_id)

        if status == GenerationStatus.COMPLETED:
            job.mark_completed(result_path or "")
        else:
            job.mark_failed()

        self.session.add(job)
        await self.session.flush()
        await self.session.refresh(job)
        return job

    async def fail_orphaned_jobs(self) -> int:
        """Mark every job still in processing as failed.

        Processing is driven by in-memory timers, so jobs left in processing
        when the previous process stopped will never complete.

        Returns:
            Number of jobs marked failed
        """
        result = await self.session.execute(
            select(GenerationJob).where(
                GenerationJob.status == GenerationStatus.PROCESSING  # type: ignore[arg-type]
            )
        )
        orphaned = list(result.scalars().all())
        for job in orphaned:
            job.mark_failed()
            self.session.add(job)
        await self.session.flush()
        return len(orphaned)

    async def delete(self, job_id: str) -> None:
        """Remove a job row.

        Raises:
            NotFoundError: If the job does not exist
        """
        result = await self.session.execute(
            delete(GenerationJob).where(GenerationJob.id == job_id)  # type: ignore[arg-type]
        )
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundError("Generation not found")
