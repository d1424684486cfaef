"""Random number sources for battles and attack scheduling.

Combat and scheduling code never calls the ``random`` module directly; it
receives a ``random.Random`` instance.  This module builds those instances:

- Reproducibility: a seed string always yields the same sequence
- Testing: a pinned source returns a constant so outcomes are exact

Examples:
    >>> seed = generate_seed("colony-7", "attack", 3)
    >>> seed
    'colony-7:attack:3'
    >>> seeded_random(seed).random() == seeded_random(seed).random()
    True
"""

import hashlib
import random


def generate_seed(*parts: object) -> str:
    """Join seed components into a single seed string.

    Args:
        *parts: Identifiers describing what the randomness is for
            (e.g. a colony id, a purpose, a counter)

    Returns:
        Seed string in the format "part1:part2:..."

    Raises:
        ValueError: If no parts are given
    """
    if not parts:
        raise ValueError("at least one seed component is required")
    return ":".join(str(part) for part in parts)


def _seed_to_int(seed: str) -> int:
    """Convert seed string to a stable 64-bit integer for random.Random().

    Args:
        seed: Seed string

    Returns:
        64-bit integer derived from SHA-256(seed)
    """
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=False)


def seeded_random(seed: str) -> random.Random:
    """Return a generator whose sequence is fully determined by ``seed``.

    Unlike ``random.Random(seed)`` the seed goes through SHA-256 first, so
    the result is stable across interpreter versions and hash seeds.
    """
    return random.Random(_seed_to_int(seed))


def build_random(seed: str | None = None) -> random.Random:
    """Seeded generator when ``seed`` is given, OS-entropy generator otherwise."""

    if seed is None:
        return random.Random()
    return seeded_random(seed)


class PinnedRandom(random.Random):
    """Generator whose ``random()`` always returns the same value.

    With the default of 0.5 every symmetric random band collapses to its
    midpoint, which makes battle outcomes exact.
    """

    def __init__(self, value: float = 0.5) -> None:
        if not 0.0 <= value < 1.0:
            raise ValueError(f"pinned value must lie in [0, 1), got {value}")
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value
