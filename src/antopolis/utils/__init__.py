"""Utility functions for the Antopolis battle system."""

from antopolis.utils.rng import PinnedRandom, build_random, generate_seed, seeded_random

__all__ = [
    "PinnedRandom",
    "build_random",
    "generate_seed",
    "seeded_random",
]
