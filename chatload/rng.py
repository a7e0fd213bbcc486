from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass(slots=True)
class DeterministicRNG:
    """Seedable random source threaded through image synthesis.

    ``seed=None`` draws entropy from the OS, so unseeded runs are not
    reproducible. The numpy generator is derived from the stdlib one, which
    keeps a single seed in charge of both scalar and array draws.
    """

    seed: Optional[int] = None
    _random: random.Random = field(init=False, repr=False)
    _numpy: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)
        self._numpy = np.random.default_rng(self._random.getrandbits(64))

    @property
    def numpy(self) -> np.random.Generator:
        return self._numpy

    def choice(self, seq):
        if not seq:
            raise ValueError("choice on empty sequence")
        return self._random.choice(seq)

    def randint(self, a: int, b: int) -> int:
        return self._random.randint(a, b)

    def random(self) -> float:
        return self._random.random()

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)

    def array(self, shape) -> np.ndarray:
        return self._numpy.random(shape)

    def spawn(self) -> "DeterministicRNG":
        """Child source for work that may run on another thread."""

        return DeterministicRNG(self._random.getrandbits(64))


__all__ = ["DeterministicRNG"]
