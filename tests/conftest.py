from __future__ import annotations

from pathlib import Path
import sys
from typing import Iterable, List, Optional

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chatload.image.interfaces import EncodeFailure
from chatload.rng import DeterministicRNG


class ScriptedCodec:
    """Codec stand-in whose encoded sizes come from a fixed script.

    Each encode returns ``sizes[n]`` bytes; decode hands back a raster of
    the last encoded shape so the escalation tiers can keep going. With
    ``fail_on=n`` the n-th encode (0-based) raises ``EncodeFailure``.
    """

    def __init__(self, sizes: Iterable[int], fail_on: Optional[int] = None):
        self.fail_on = fail_on
        self.sizes: List[int] = list(sizes)
        self.encodes: List[dict] = []
        self.resizes: List[tuple] = []
        self._shapes: dict[bytes, tuple] = {}

    def encode(self, pixels: np.ndarray, *, quality: int, effort: int) -> bytes:
        index = len(self.encodes)
        self.encodes.append({"quality": quality, "effort": effort, "shape": pixels.shape})
        if index == self.fail_on:
            raise EncodeFailure(f"scripted failure on encode {index}")
        size = self.sizes[min(index, len(self.sizes) - 1)]
        blob = bytes([index % 256]) * size
        self._shapes[blob] = pixels.shape
        return blob

    def decode(self, blob: bytes) -> np.ndarray:
        height, width = self._shapes[blob][:2]
        return np.full((height, width, 3), 128, dtype=np.uint8)

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        self.resizes.append((width, height))
        return np.zeros((height, width, 3), dtype=np.uint8)


@pytest.fixture()
def rng() -> DeterministicRNG:
    return DeterministicRNG(1234)


@pytest.fixture()
def scripted_codec():
    return ScriptedCodec
