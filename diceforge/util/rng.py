"""Deterministic random number generation with isolated streams.

Every randomised part of the engine (die rolls, affix value rolls, region level
picks) draws from its own named stream derived from one master seed, so:

1. A combat replays identically from the same master seed
2. Rolling more dice doesn't shift the sequence used for affix rolls
3. Tests can pin a seed without patching the ``random`` module

Usage:
    from diceforge.util import rng
    rng.init(config.RANDOM_SEED)

    _rng = rng.get("dice.roll")

    def roll_face(sides: int) -> int:
        return _rng.randint(1, sides)

Domain names in use:
    - "dice.roll"      die faces and rerolls
    - "affix.roll"     effect_number rolls at item/enemy generation time
    - "scaling.region" level picks inside a region band
"""

from __future__ import annotations

import zlib
from collections.abc import Sequence
from random import Random
from typing import TYPE_CHECKING, TypeAlias, TypeVar

if TYPE_CHECKING:
    from diceforge.types import RandomSeed

T = TypeVar("T")


class RNGStream:
    """Proxy that delegates to the current RNG for a domain.

    Callers may cache a stream at module level; after :func:`reset` the proxy
    transparently picks up the freshly seeded generator.
    """

    def __init__(self, provider: RNGProvider, domain: str) -> None:
        self._provider = provider
        self._domain = domain

    def _rng(self) -> Random:
        return self._provider._get_raw(self._domain)

    def random(self) -> float:
        """Return random float in [0.0, 1.0)."""
        return self._rng().random()

    def randint(self, a: int, b: int) -> int:
        """Return random integer N such that a <= N <= b."""
        return self._rng().randint(a, b)

    def uniform(self, a: float, b: float) -> float:
        """Return random float N such that a <= N <= b."""
        return self._rng().uniform(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        """Return random element from non-empty sequence."""
        return self._rng().choice(seq)


# Functions that roll accept either a plain Random or a stream proxy.
RNG: TypeAlias = Random | RNGStream


class RNGProvider:
    """Hands out one independent ``Random`` per domain name."""

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self._master_seed = master_seed
        self._streams: dict[str, Random] = {}
        self._proxies: dict[str, RNGStream] = {}

    def get(self, domain: str) -> RNGStream:
        """Return the cached proxy for ``domain``, creating it on first use."""
        if domain not in self._proxies:
            self._proxies[domain] = RNGStream(self, domain)
        return self._proxies[domain]

    def _get_raw(self, domain: str) -> Random:
        if domain not in self._streams:
            if self._master_seed is None:
                self._streams[domain] = Random()
            else:
                # crc32 rather than hash(): hash() is salted per interpreter
                # session and would break cross-session determinism.
                derived_seed = zlib.crc32(f"{self._master_seed}:{domain}".encode())
                self._streams[domain] = Random(derived_seed)
        return self._streams[domain]

    def reset(self, master_seed: RandomSeed = None) -> None:
        """Reseed every domain. Existing proxies stay valid."""
        self._master_seed = master_seed
        self._streams.clear()


# =============================================================================
# Module-level API
# =============================================================================

_provider: RNGProvider | None = None


def init(master_seed: RandomSeed = None) -> None:
    """Initialize (or reseed) the global provider."""
    global _provider
    if _provider is not None:
        _provider.reset(master_seed)
    else:
        _provider = RNGProvider(master_seed)


def get(domain: str) -> RNGStream:
    """Get an RNG stream for the named domain.

    Auto-initializes an unseeded provider if :func:`init` was never called, so
    module-level ``_rng = rng.get(...)`` lines are safe at import time.
    """
    global _provider
    if _provider is None:
        _provider = RNGProvider(None)
    return _provider.get(domain)


def reset(master_seed: RandomSeed = None) -> None:
    """Reseed all streams. Raises if :func:`init` has not been called."""
    if _provider is None:
        raise RuntimeError("RNG not initialized - call rng.init() first")
    _provider.reset(master_seed)
