"""Simulated processing strategy tests."""

import random

import pytest

from genstudio.core.config import Settings
from genstudio.services.simulation import (
    FixedProcessingStrategy,
    RandomizedProcessingStrategy,
    strategy_from_settings,
)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.asyncio
async def test_randomized_delay_stays_within_bounds():
    sleep = RecordingSleep()
    strategy = RandomizedProcessingStrategy(1.0, 3.0, 0.2, rng=random.Random(7), sleep=sleep)

    outcomes = [await strategy() for _ in range(50)]

    assert all(1.0 <= delay <= 3.0 for delay in sleep.delays)
    assert [o.delay_seconds for o in outcomes] == sleep.delays


@pytest.mark.asyncio
@pytest.mark.parametrize(("failure_rate", "expected"), [(0.0, True), (1.0, False)])
async def test_failure_rate_extremes(failure_rate, expected):
    strategy = RandomizedProcessingStrategy(
        0.0, 0.0, failure_rate, rng=random.Random(1), sleep=RecordingSleep()
    )

    outcomes = [await strategy() for _ in range(20)]

    assert all(o.succeeded is expected for o in outcomes)


@pytest.mark.asyncio
async def test_failure_rate_is_roughly_respected():
    strategy = RandomizedProcessingStrategy(
        0.0, 0.0, 0.2, rng=random.Random(42), sleep=RecordingSleep()
    )

    outcomes = [await strategy() for _ in range(2000)]
    failures = sum(1 for o in outcomes if not o.succeeded)

    assert 300 < failures < 500


@pytest.mark.parametrize(
    ("min_delay", "max_delay", "failure_rate"),
    [(-1.0, 1.0, 0.1), (2.0, 1.0, 0.1), (0.0, 1.0, 1.5), (0.0, 1.0, -0.1)],
)
def test_invalid_parameters_rejected(min_delay, max_delay, failure_rate):
    with pytest.raises(ValueError):
        RandomizedProcessingStrategy(min_delay, max_delay, failure_rate)


@pytest.mark.asyncio
async def test_fixed_strategy_counts_calls_and_raises_configured_error():
    strategy = FixedProcessingStrategy(error=RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        await strategy()

    assert strategy.calls == 1


def test_strategy_from_settings_uses_test_profile():
    settings = Settings(APP_ENV="test")  # type: ignore[call-arg]

    strategy = strategy_from_settings(settings)

    assert strategy.min_delay == strategy.max_delay == 0.1
    assert strategy.failure_rate == 0.1


def test_strategy_from_settings_uses_production_profile():
    settings = Settings(APP_ENV="development")  # type: ignore[call-arg]

    strategy = strategy_from_settings(settings)

    assert (strategy.min_delay, strategy.max_delay) == (1.0, 3.0)
    assert strategy.failure_rate == 0.2
