from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np


class GenerationError(RuntimeError):
    """Base class for failures raised by the image generator."""


class InvalidParameter(GenerationError, ValueError):
    """The request was rejected before any synthesis work started."""


class EncodeFailure(GenerationError):
    """The image capability rejected an encode, decode or resize step."""


class CapabilityUnavailable(GenerationError):
    """The raster/encoding backend is missing or cannot encode WebP."""


class BlendMode(str, Enum):
    NORMAL = "normal"
    OVERLAY = "overlay"
    SOFT_LIGHT = "soft-light"


@dataclass(frozen=True)
class GenerationRequest:
    width: int
    height: int
    min_size_kb: int
    max_size_kb: int
    quality: int = 90


@dataclass(frozen=True)
class Layer:
    """RGBA raster (``height x width x 4``, uint8) with its blend mode."""

    name: str
    pixels: np.ndarray
    blend: BlendMode = BlendMode.NORMAL

    @property
    def size(self) -> tuple[int, int]:
        height, width = self.pixels.shape[:2]
        return width, height


@dataclass(frozen=True)
class EncodedArtifact:
    data: bytes
    width: int
    height: int
    size_kb: int
    target_kb: int
    tier: int
    encode_passes: int
    format: str = "webp"

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    def as_dict(self) -> dict[str, object]:
        return {
            "format": self.format,
            "width": self.width,
            "height": self.height,
            "size_kb": self.size_kb,
            "target_kb": self.target_kb,
            "tier": self.tier,
            "encode_passes": self.encode_passes,
        }


class ImageCodecProtocol(Protocol):
    def encode(self, pixels: np.ndarray, *, quality: int, effort: int) -> bytes:
        """Encode an RGB ``uint8`` raster to the target format."""

    def decode(self, blob: bytes) -> np.ndarray:
        """Decode bytes back into an RGB ``uint8`` raster."""

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        """Nearest-neighbour resize of an RGB raster."""


__all__ = [
    "BlendMode",
    "CapabilityUnavailable",
    "EncodeFailure",
    "EncodedArtifact",
    "GenerationError",
    "GenerationRequest",
    "ImageCodecProtocol",
    "InvalidParameter",
    "Layer",
]
