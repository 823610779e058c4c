from __future__ import annotations

import random

import noise

# snoise3 repeats every 256 units on each axis; offsets stay inside one period.
_OFFSET_RANGE = 256.0


class NoiseField:
    """Coherent 3D simplex noise over (x, y, t), fixed for the process lifetime.

    The underlying permutation table is shared by every field; the seed picks a
    stable coordinate offset so differently seeded fields decorrelate while the
    same seed always reproduces the same samples.
    """

    def __init__(self, seed: int = 0, octaves: int = 1):
        self._seed = seed
        self._octaves = max(1, int(octaves))
        offsets = random.Random(seed)
        self._offset_x = offsets.uniform(0.0, _OFFSET_RANGE)
        self._offset_y = offsets.uniform(0.0, _OFFSET_RANGE)
        self._offset_t = offsets.uniform(0.0, _OFFSET_RANGE)

    @property
    def seed(self) -> int:
        return self._seed

    def sample(self, x: float, y: float, t: float) -> float:
        value = noise.snoise3(
            x + self._offset_x,
            y + self._offset_y,
            t + self._offset_t,
            octaves=self._octaves,
        )
        if value > 1.0:
            return 1.0
        if value < -1.0:
            return -1.0
        return value

    def sample_unit(self, x: float, y: float, t: float) -> float:
        return (self.sample(x, y, t) + 1.0) * 0.5
