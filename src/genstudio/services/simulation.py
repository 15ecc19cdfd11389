"""Simulated model inference.

The processor never decides latency or outcome itself; it asks a processing
strategy. Production uses a randomized strategy, tests swap in a fixed one.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from genstudio.core.config import Settings


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of one simulated processing run."""

    succeeded: bool
    delay_seconds: float


class ProcessingStrategy(Protocol):
    """Waits for a simulated duration and decides success or failure."""

    async def __call__(self) -> ProcessingOutcome: ...


class RandomizedProcessingStrategy:
    """Uniform random delay followed by a weighted coin flip.

    Args:
        min_delay: Lower bound of the delay in seconds
        max_delay: Upper bound of the delay in seconds
        failure_rate: Probability in [0, 1] that a run fails
        rng: Random source (seed it for reproducible runs)
        sleep: Awaitable sleep function
    """

    def __init__(
        self,
        min_delay: float,
        max_delay: float,
        failure_rate: float,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(f"Invalid delay bounds: {min_delay}..{max_delay}")
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be between 0 and 1 (got {failure_rate})")

        self.min_delay = min_delay
        self.max_delay = max_delay
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.sleep = sleep

    async def __call__(self) -> ProcessingOutcome:
        delay = self.rng.uniform(self.min_delay, self.max_delay)
        await self.sleep(delay)
        succeeded = self.rng.random() >= self.failure_rate
        return ProcessingOutcome(succeeded=succeeded, delay_seconds=delay)


class FixedProcessingStrategy:
    """Deterministic strategy: same delay and outcome every run.

    If `error` is set, every run raises it after the delay, which simulates an
    internal fault inside processing.
    """

    def __init__(self, succeed: bool = True, delay: float = 0.0, error: Exception | None = None):
        self.succeed = succeed
        self.delay = delay
        self.error = error
        self.calls = 0

    async def __call__(self) -> ProcessingOutcome:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProcessingOutcome(succeeded=self.succeed, delay_seconds=self.delay)


def strategy_from_settings(settings: Settings) -> RandomizedProcessingStrategy:
    """Build the randomized strategy for the current environment.

    Test mode uses a short fixed delay and a lower failure rate so suites stay
    fast while outcomes remain probabilistic.
    """
    if settings.is_test:
        return RandomizedProcessingStrategy(
            min_delay=settings.test_processing_delay_seconds,
            max_delay=settings.test_processing_delay_seconds,
            failure_rate=settings.test_processing_failure_rate,
        )
    return RandomizedProcessingStrategy(
        min_delay=settings.processing_min_delay_seconds,
        max_delay=settings.processing_max_delay_seconds,
        failure_rate=settings.processing_failure_rate,
    )
