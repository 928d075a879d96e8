"""Seedable random number streams, one per editor subsystem.

Every subsystem that needs randomness (automap output selection, brush
scatter, preview jitter) pulls its own stream from a shared provider. Streams
are derived from a single master seed, so:

1. A whole editing session can be replayed from one seed
2. Adding randomness to one subsystem doesn't shift the others' sequences
3. Tests can pin a seed without touching unrelated code

Usage:
    # At editor startup
    from tessella.util import rng
    rng.init(config.RANDOM_SEED)

    # In any module - cache the stream reference
    _rng = rng.get("automap.output")

    def pick() -> int:
        return _rng.randrange(100)

    # After rng.reset(), cached references automatically use the new stream

Domain naming convention (hierarchical):
    - "automap.output"
    - "brush.scatter"
"""

from __future__ import annotations

import zlib
from random import Random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tessella.types import RandomSeed


class RNGStream:
    """Proxy that delegates to the current RNG for a domain.

    Callers may hold on to a stream across rng.reset(); every call looks the
    underlying Random instance up fresh from the provider. Only the draw the
    engine makes, randrange(), is exposed.
    """

    def __init__(self, provider: RNGProvider, domain: str) -> None:
        self._provider = provider
        self._domain = domain

    def _rng(self) -> Random:
        return self._provider._get_raw(self._domain)

    def randrange(self, start: int, stop: int | None = None, step: int = 1) -> int:
        """Return randomly selected element from range(start, stop, step)."""
        return self._rng().randrange(start, stop, step)


# Anything with the Random interface used by the engine.
# Use this in type hints: `def foo(rng: RNG) -> int:`
type RNG = Random | RNGStream


class RNGProvider:
    """Hands out isolated RNG streams keyed by domain name."""

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self._master_seed = master_seed
        self._streams: dict[str, Random] = {}
        self._proxies: dict[str, RNGStream] = {}

    def get(self, domain: str) -> RNGStream:
        """Get a cacheable RNG stream for the named domain."""
        if domain not in self._proxies:
            self._proxies[domain] = RNGStream(self, domain)
        return self._proxies[domain]

    def _get_raw(self, domain: str) -> Random:
        if domain not in self._streams:
            if self._master_seed is None:
                self._streams[domain] = Random()
            else:
                # crc32 rather than hash(): hash() of str is salted per process.
                derived_seed = zlib.crc32(f"{self._master_seed}:{domain}".encode())
                self._streams[domain] = Random(derived_seed)
        return self._streams[domain]

    def reset(self, master_seed: RandomSeed = None) -> None:
        """Reset all streams with a new master seed.

        Existing RNGStream proxies remain valid and pick up the new streams.
        """
        self._master_seed = master_seed
        self._streams.clear()


# =============================================================================
# Module-level API
# =============================================================================

_provider: RNGProvider | None = None


def init(master_seed: RandomSeed = None) -> None:
    """Initialize the global RNG provider with a master seed.

    Re-initializing resets the existing provider so cached streams keep
    working.
    """
    global _provider
    if _provider is not None:
        _provider.reset(master_seed)
    else:
        _provider = RNGProvider(master_seed)


def get(domain: str) -> RNGStream:
    """Get an RNG stream for the named domain.

    Auto-initializes an unseeded provider when init() has not been called,
    which gives entropy-seeded (non-reproducible) streams.
    """
    global _provider
    if _provider is None:
        _provider = RNGProvider(None)
    return _provider.get(domain)


def reset(master_seed: RandomSeed = None) -> None:
    """Reset all RNG streams with a new master seed."""
    if _provider is None:
        raise RuntimeError("RNG not initialized - call rng.init() first")
    _provider.reset(master_seed)
