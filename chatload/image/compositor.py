from __future__ import annotations

from typing import Callable, Dict, Iterable, Sequence

import numpy as np

from .interfaces import BlendMode, EncodeFailure, ImageCodecProtocol, Layer

COMPOSITE_QUALITY = 90
MIN_EFFORT = 0

BlendFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _normal(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return source


def _overlay(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return np.where(
        backdrop <= 0.5,
        2.0 * backdrop * source,
        1.0 - 2.0 * (1.0 - backdrop) * (1.0 - source),
    )


def _soft_light(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    # pegtop variant: continuous and needs no branch
    return (1.0 - 2.0 * source) * backdrop * backdrop + 2.0 * source * backdrop


BLEND_FUNCTIONS: Dict[BlendMode, BlendFn] = {
    BlendMode.NORMAL: _normal,
    BlendMode.OVERLAY: _overlay,
    BlendMode.SOFT_LIGHT: _soft_light,
}


def blend(backdrop: np.ndarray, layer: Layer) -> np.ndarray:
    """Blend ``layer`` onto a float RGB backdrop in ``[0, 1]`` and return the result."""

    if backdrop.shape[:2] != layer.pixels.shape[:2]:
        raise EncodeFailure(
            f"layer {layer.name!r} is {layer.size[0]}x{layer.size[1]}, "
            f"canvas is {backdrop.shape[1]}x{backdrop.shape[0]}"
        )
    source = layer.pixels[..., :3].astype(np.float32) / 255.0
    alpha = layer.pixels[..., 3:4].astype(np.float32) / 255.0
    mixed = BLEND_FUNCTIONS[BlendMode(layer.blend)](backdrop, source)
    return backdrop + (mixed - backdrop) * alpha


def composite_onto(pixels: np.ndarray, layers: Iterable[Layer]) -> np.ndarray:
    """Stack layers over an existing RGB ``uint8`` raster."""

    canvas = pixels[..., :3].astype(np.float32) / 255.0
    for layer in layers:
        canvas = blend(canvas, layer)
    return to_uint8(canvas)


def composite(layers: Sequence[Layer]) -> np.ndarray:
    """Merge layers in emission order; the first one seeds the canvas."""

    if not layers:
        raise ValueError("composite() requires at least one layer")
    first, rest = layers[0], layers[1:]
    height, width = first.pixels.shape[:2]
    canvas = np.zeros((height, width, 3), dtype=np.float32)
    canvas = blend(canvas, first)
    for layer in rest:
        canvas = blend(canvas, layer)
    return to_uint8(canvas)


def to_uint8(canvas: np.ndarray) -> np.ndarray:
    return np.clip(canvas * 255.0 + 0.5, 0, 255).astype(np.uint8)


def render(layers: Sequence[Layer], codec: ImageCodecProtocol) -> bytes:
    """Composite and encode at high quality with the fastest encoder effort."""

    return codec.encode(composite(layers), quality=COMPOSITE_QUALITY, effort=MIN_EFFORT)


__all__ = [
    "BLEND_FUNCTIONS",
    "COMPOSITE_QUALITY",
    "MIN_EFFORT",
    "blend",
    "composite",
    "composite_onto",
    "render",
    "to_uint8",
]
