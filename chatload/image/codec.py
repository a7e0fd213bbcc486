"""Pillow-backed WebP codec used by the size-escalation controller."""
from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError, features

from .interfaces import CapabilityUnavailable, EncodeFailure


class PillowWebPCodec:
    """Encode, decode and nearest-resize RGB rasters through Pillow."""

    format = "WEBP"

    def __init__(self) -> None:
        if not features.check("webp"):
            raise CapabilityUnavailable("Pillow was built without WebP support")

    def encode(self, pixels: np.ndarray, *, quality: int, effort: int) -> bytes:
        buffer = io.BytesIO()
        try:
            image = Image.fromarray(np.ascontiguousarray(pixels[..., :3], dtype=np.uint8))
            # Pillow calls the speed/size trade-off "method" (0 = fastest).
            image.save(buffer, format=self.format, quality=int(quality), method=int(effort))
        except (OSError, ValueError, TypeError) as exc:
            raise EncodeFailure(f"WebP encode failed: {exc}") from exc
        return buffer.getvalue()

    def decode(self, blob: bytes) -> np.ndarray:
        try:
            with Image.open(io.BytesIO(blob)) as img:
                return np.asarray(img.convert("RGB"), dtype=np.uint8).copy()
        except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise EncodeFailure(f"decode failed: {exc}") from exc

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        try:
            image = Image.fromarray(np.ascontiguousarray(pixels[..., :3], dtype=np.uint8))
            resized = image.resize((int(width), int(height)), Image.Resampling.NEAREST)
        except (OSError, ValueError) as exc:
            raise EncodeFailure(f"resize to {width}x{height} failed: {exc}") from exc
        return np.asarray(resized, dtype=np.uint8).copy()


__all__ = ["PillowWebPCodec"]
