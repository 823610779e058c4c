from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a float in [0, 1)."""
        ...


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next(self) -> float:
        return self._random.random()


def uniform(source: RandomSource, low: float, high: float) -> float:
    return low + (high - low) * source.next()
