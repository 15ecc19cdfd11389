"""Background processor for simulated generation jobs.

The create-generation handler schedules one task per job and returns without
awaiting it. Each task waits for the processing strategy, materializes the
result (a copy of the original upload) and writes the job's terminal status.

## Failure handling

A processing task has no caller to report to, so it owns every failure mode:

- Strategy decides failure: job -> failed
- Any exception while processing (including the copy and the completed
  write): logged, result discarded, job -> failed
- Job deleted before the terminal write (NotFoundError): logged, result discarded
- Job already terminal (InvalidStateTransition): logged, write is a no-op
- Error during the failed write itself: logged, never raised

Only cancellation (application shutdown) propagates out of a task. Jobs
interrupted that way are failed by `fail_orphaned_jobs` on the next startup.
"""

import asyncio
import time
from pathlib import Path

import structlog

from genstudio.models.generation import GenerationStatus, InvalidStateTransition
from genstudio.services.exceptions import NotFoundError
from genstudio.services.simulation import ProcessingStrategy
from genstudio.services.storage import UploadStorage
from genstudio.uow import UnitOfWorkFactory

logger = structlog.get_logger(__name__)


class GenerationProcessor:
    """Runs simulated processing for generation jobs as background tasks.

    There is no queue or worker pool: every scheduled job gets its own task on
    the running event loop. Tasks are tracked so they are not garbage
    collected mid-flight and so shutdown can cancel them.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        storage: UploadStorage,
        strategy: ProcessingStrategy,
    ):
        self.uow_factory = uow_factory
        self.storage = storage
        self.strategy = strategy
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        """Number of jobs currently being processed."""
        return len(self._tasks)

    def schedule(self, job_id: str, image_path: Path | str) -> asyncio.Task:
        """Start processing a job without waiting for it.

        Must be called after the job row is committed, so the task can see it.

        Returns:
            The background task (callers normally ignore it)
        """
        task = asyncio.create_task(
            self.process(job_id, str(image_path)), name=f"generation-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        logger.debug("generation.processing.scheduled", generation_id=job_id)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.info("generation.processing.cancelled", task=task.get_name())
            return

        # process() handles its own errors; anything here is a bug
        exc = task.exception()
        if exc is not None:
            logger.error(
                "generation.processing.crashed",
                task=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=exc,
            )

    async def process(self, job_id: str, image_path: str) -> None:
        """Simulate processing for one job and record its terminal status.

        Never raises except for cancellation.

        Args:
            job_id: Public job identifier
            image_path: Path of the stored original upload
        """
        start_time = time.time()
        result_path: Path | None = None
        logger.info("generation.processing.started", generation_id=job_id)

        try:
            outcome = await self.strategy()

            if outcome.succeeded:
                result_path = await self.storage.duplicate(image_path, job_id)
                await self._write_terminal_status(
                    job_id, GenerationStatus.COMPLETED, str(result_path)
                )
            else:
                await self._write_terminal_status(job_id, GenerationStatus.FAILED)

            logger.info(
                "generation.processing.finished",
                generation_id=job_id,
                succeeded=outcome.succeeded,
                simulated_delay_seconds=round(outcome.delay_seconds, 3),
                duration_seconds=round(time.time() - start_time, 3),
            )

        except asyncio.CancelledError:
            logger.info("generation.processing.interrupted", generation_id=job_id)
            raise

        except Exception as e:
            logger.error(
                "generation.processing.failed",
                generation_id=job_id,
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            if result_path is not None:
                await self._discard_result(job_id, result_path)
            try:
                await self._write_terminal_status(job_id, GenerationStatus.FAILED)
            except Exception as write_error:
                logger.error(
                    "generation.processing.mark_failed_error",
                    generation_id=job_id,
                    error_type=type(write_error).__name__,
                    error_message=str(write_error),
                )

    async def _discard_result(self, job_id: str, result_path: Path) -> None:
        try:
            await self.storage.discard(result_path)
        except OSError as e:
            logger.error(
                "generation.processing.discard_error",
                generation_id=job_id,
                result_path=str(result_path),
                error_message=str(e),
            )

    async def _write_terminal_status(
        self,
        job_id: str,
        status: GenerationStatus,
        result_path: str | None = None,
    ) -> None:
        """Write a terminal status, tolerating vanished or already-finished jobs."""
        try:
            async with await self.uow_factory() as uow:
                await uow.generations.update_status(job_id, status, result_path)
        except NotFoundError:
            logger.warning(
                "generation.processing.job_missing",
                generation_id=job_id,
                status=status.value,
            )
            if result_path:
                await self.storage.discard(result_path)
            return
        except InvalidStateTransition as e:
            logger.warning(
                "generation.processing.already_terminal",
                generation_id=job_id,
                status=status.value,
                reason=str(e),
            )
            if result_path:
                await self.storage.discard(result_path)
            return

        logger.debug("generation.status_updated", generation_id=job_id, status=status.value)

    async def drain(self) -> None:
        """Wait until every in-flight job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every in-flight job and wait for the cancellations."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("generation.processor.shutdown", cancelled=len(tasks))
