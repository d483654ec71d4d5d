"""Common utilities for the RCI engine."""
import random
from typing import Protocol, Sequence


class RandomSource(Protocol):
    """Anything with a ``random() -> float in [0, 1)`` method (e.g. random.Random)."""

    def random(self) -> float:
        ...


class FixedSequenceRandom:
    """Deterministic random source that cycles through a fixed sequence.

    Used in tests so that sub-component jitter, wait times and crowd scores
    are reproducible.
    """

    def __init__(self, values: Sequence[float] = (0.5,)):
        if not values:
            raise ValueError("values must not be empty")
        for v in values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"value out of [0, 1): {v}")
        self._values = list(values)
        self._idx = 0

    def random(self) -> float:
        value = self._values[self._idx % len(self._values)]
        self._idx += 1
        return value


def default_random() -> RandomSource:
    """Fresh, unseeded source: every invocation draws new randomness."""
    return random.Random()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def jitter(rng: RandomSource, low: float, high: float) -> float:
    """Uniform draw in [low, high) from an injected source."""
    return low + (high - low) * rng.random()


def pick(rng: RandomSource, items: Sequence):
    """Random element of a non-empty sequence."""
    idx = min(int(rng.random() * len(items)), len(items) - 1)
    return items[idx]
