from __future__ import annotations

from collections.abc import Iterator

import pytest

from diceforge.events import reset_event_bus_for_testing
from diceforge.util import rng


@pytest.fixture(autouse=True)
def seeded_rng() -> Iterator[None]:
    """Reseed every RNG stream so each test sees the same sequence."""
    rng.init(12345)
    yield
    rng.reset(12345)


@pytest.fixture(autouse=True)
def clean_event_bus() -> Iterator[None]:
    """Give each test a fresh global event bus."""
    reset_event_bus_for_testing()
    yield
    reset_event_bus_for_testing()
