"""Client-side generation workflow with bounded retry and cancellation.

A submission becomes a `GenerationAttempt`. The attempt owns the running
task, its retry counter and a cancelled flag; the controller only tracks the
current attempt. A cancelled or superseded attempt finds it is no longer
current at its next checkpoint and stops without touching controller state.

State flow:

    idle -> submitting -> succeeded -> idle
                       -> failed-final -> idle
                       -> retry-waiting -> submitting (same payload)
    submitting | retry-waiting -> cancelled -> idle

Only overload rejections are retried, at most `max_retries` times.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import structlog

from genstudio.client.api_client import (
    ApiError,
    GenerationRecord,
    ImageUpload,
    StudioApiClient,
    is_retryable,
)

logger = structlog.get_logger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 2.0
VALIDATION_MESSAGE = "Please select an image and enter a prompt"
UNEXPECTED_FAILURE_MESSAGE = "Generation failed unexpectedly"


class ControllerState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    RETRY_WAITING = "retry-waiting"
    CANCELLED = "cancelled"
    SUCCEEDED = "succeeded"
    FAILED_FINAL = "failed-final"


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    style: str
    image: ImageUpload


@dataclass
class GenerationAttempt:
    """One user submission, including all of its retries."""

    request: GenerationRequest
    task: asyncio.Task | None = None
    retry_count: int = 0
    cancelled: bool = False


class GenerationController:
    """Drives one generation at a time against the API.

    Args:
        client: API client (must already hold a token)
        max_retries: Automatic resubmissions after overload rejections
        retry_delay: Seconds to wait before each resubmission
        history_limit: Page size used to refresh recent generations on success
        on_change: Called with the controller after every state transition
        sleep: Awaitable sleep used for the retry wait
    """

    def __init__(
        self,
        client: StudioApiClient,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
        history_limit: int = 5,
        on_change: Callable[["GenerationController"], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.history_limit = history_limit
        self.on_change = on_change
        self._sleep = sleep

        self.state = ControllerState.IDLE
        self.error_message: str | None = None
        self.retry_count = 0
        self.recent_generations: list[GenerationRecord] = []
        self.last_generation: GenerationRecord | None = None
        self.last_outcome: ControllerState | None = None
        self.transitions: list[ControllerState] = []
        self._attempt: GenerationAttempt | None = None

    @property
    def busy(self) -> bool:
        return self.state in (ControllerState.SUBMITTING, ControllerState.RETRY_WAITING)

    @property
    def status_text(self) -> str:
        if self.state == ControllerState.SUBMITTING:
            if self.retry_count:
                return f"Generating... (retry {self.retry_count}/{self.max_retries})"
            return "Generating..."
        if self.state == ControllerState.RETRY_WAITING:
            return self.error_message or "Retrying..."
        return self.error_message or ""

    def _set_state(self, state: ControllerState) -> None:
        self.state = state
        self.transitions.append(state)
        if self.on_change is not None:
            self.on_change(self)

    def _is_current(self, attempt: GenerationAttempt) -> bool:
        return not attempt.cancelled and self._attempt is attempt

    def submit(self, prompt: str | None, style: str, image: ImageUpload | None) -> bool:
        """Start a generation attempt.

        Must be called from a running event loop.

        Returns:
            True if an attempt was started; False if one is already in flight
            or the input is incomplete (the latter sets `error_message`)
        """
        if self.busy:
            logger.debug("controller.submit_ignored", state=self.state.value)
            return False

        if image is None or not prompt or not prompt.strip():
            self.error_message = VALIDATION_MESSAGE
            if self.on_change is not None:
                self.on_change(self)
            return False

        attempt = GenerationAttempt(request=GenerationRequest(prompt, style, image))
        self._attempt = attempt
        self.error_message = None
        self.retry_count = 0
        self._set_state(ControllerState.SUBMITTING)

        attempt.task = asyncio.create_task(self._run(attempt), name="generation-attempt")
        return True

    async def _run(self, attempt: GenerationAttempt) -> None:
        request = attempt.request

        while True:
            try:
                generation = await self.client.create_generation(
                    request.prompt, request.style, request.image
                )
            except ApiError as e:
                if not self._is_current(attempt):
                    return

                if is_retryable(e) and attempt.retry_count < self.max_retries:
                    attempt.retry_count += 1
                    self.retry_count = attempt.retry_count
                    self.error_message = (
                        f"{e.message}. Retrying... ({attempt.retry_count}/{self.max_retries})"
                    )
                    logger.info(
                        "controller.retry_scheduled",
                        retry=attempt.retry_count,
                        max_retries=self.max_retries,
                        delay_seconds=self.retry_delay,
                    )
                    self._set_state(ControllerState.RETRY_WAITING)

                    await self._sleep(self.retry_delay)

                    if not self._is_current(attempt):
                        return
                    self._set_state(ControllerState.SUBMITTING)
                    continue

                self._finish_failed(attempt, e.message)
                return
            except Exception as e:
                logger.error(
                    "controller.unexpected_error",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                if self._is_current(attempt):
                    self._finish_failed(attempt, UNEXPECTED_FAILURE_MESSAGE)
                return

            if not self._is_current(attempt):
                return
            await self._finish_succeeded(attempt, generation)
            return

    async def _finish_succeeded(
        self, attempt: GenerationAttempt, generation: GenerationRecord
    ) -> None:
        try:
            self.recent_generations = await self.client.list_generations(self.history_limit)
        except Exception as e:
            # History is best effort once the generation was accepted
            logger.warning(
                "controller.history_refresh_failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )

        if not self._is_current(attempt):
            return

        self._attempt = None
        self.last_generation = generation
        self.last_outcome = ControllerState.SUCCEEDED
        self.retry_count = 0
        self.error_message = None
        logger.info("controller.generation_started", generation_id=generation.id)
        self._set_state(ControllerState.SUCCEEDED)
        self._set_state(ControllerState.IDLE)

    def _finish_failed(self, attempt: GenerationAttempt, message: str) -> None:
        self._attempt = None
        self.last_outcome = ControllerState.FAILED_FINAL
        self.retry_count = 0
        self.error_message = message
        logger.info(
            "controller.generation_failed", error_message=message, retries=attempt.retry_count
        )
        self._set_state(ControllerState.FAILED_FINAL)
        self._set_state(ControllerState.IDLE)

    def cancel(self) -> bool:
        """Abort the in-flight request or retry wait.

        Returns:
            True if an attempt was cancelled
        """
        attempt = self._attempt
        if attempt is None or not self.busy:
            return False

        attempt.cancelled = True
        if attempt.task is not None:
            attempt.task.cancel()

        self._attempt = None
        self.last_outcome = ControllerState.CANCELLED
        self.retry_count = 0
        self.error_message = None
        logger.info("controller.cancelled", retries=attempt.retry_count)
        self._set_state(ControllerState.CANCELLED)
        self._set_state(ControllerState.IDLE)
        return True

    async def wait(self) -> None:
        """Wait until the current attempt finishes or is cancelled."""
        attempt = self._attempt
        if attempt is None or attempt.task is None:
            return
        await asyncio.gather(attempt.task, return_exceptions=True)
