"""Content layers that resist lossy compression.

Every layer is rendered independently from its own random draws; the
compositor decides how they stack.
"""
from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from chatload.rng import DeterministicRNG

from .interfaces import BlendMode, Layer

RGB = Tuple[int, int, int]

PALETTE: Tuple[str, ...] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA0DD", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E9",
    "#F8C471", "#82E0AA", "#F1948A", "#85C1E9", "#D7BDE2",
    "#A3E4D7", "#F9E79F", "#D2B4DE", "#A9CCE3", "#FAD7A0",
)

SHAPE_KINDS: Tuple[str, ...] = ("circle", "rect", "polygon", "lines")
SHAPE_OPACITY = {"circle": 0.10, "rect": 0.08, "polygon": 0.05, "lines": 0.03}
TILE_SKIP_THRESHOLD = 0.3

DEFAULT_TEXTURE_LAYERS = 8
DEFAULT_NOISE_INTENSITY = 0.3
DEFAULT_GRADIENT_BLOBS = 5

HF_BLOCK_SIZE = 2
HF_OPACITY_RANGE = (0.05, 0.15)


def _hex_to_rgb(value: str) -> RGB:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def random_color(rng: DeterministicRNG) -> RGB:
    return _hex_to_rgb(rng.choice(PALETTE))


def tile_size(index: int) -> int:
    return 20 + index * 5


def shape_kind(index: int) -> str:
    return SHAPE_KINDS[index % len(SHAPE_KINDS)]


def polygon_sides(index: int) -> int:
    return 3 + (index % 5)


# ----------------------------------------------------------------------
# Base gradient
# ----------------------------------------------------------------------
def _paint_disc(
    canvas: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    centre: Tuple[float, float],
    radius: float,
    colors: Tuple[RGB, RGB],
    opacity: Tuple[float, float],
) -> None:
    distance = np.hypot(xs - centre[0], ys - centre[1]) / max(radius, 1e-6)
    inside = distance <= 1.0
    if not inside.any():
        return
    t = np.clip(distance, 0.0, 1.0)[..., None]
    inner = np.asarray(colors[0], dtype=np.float32) / 255.0
    outer = np.asarray(colors[1], dtype=np.float32) / 255.0
    color = inner + (outer - inner) * t
    alpha = (opacity[0] + (opacity[1] - opacity[0]) * t) * inside[..., None]
    canvas += (color - canvas) * alpha


def base_gradient_layer(
    width: int,
    height: int,
    rng: DeterministicRNG,
    *,
    blobs: int = DEFAULT_GRADIENT_BLOBS,
) -> Layer:
    """Diagonal three-stop gradient, one radial disc and a few soft blobs."""

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    t = (xs / max(width - 1, 1) + ys / max(height - 1, 1)) / 2.0

    stops = [0.0, rng.random(), 1.0]
    stop_colors = [random_color(rng) for _ in stops]
    canvas = np.stack(
        [np.interp(t, stops, [c[channel] / 255.0 for c in stop_colors]) for channel in range(3)],
        axis=-1,
    ).astype(np.float32)

    _paint_disc(
        canvas,
        xs,
        ys,
        centre=(rng.random() * width, rng.random() * height),
        radius=width / 3.0,
        colors=(random_color(rng), random_color(rng)),
        opacity=(0.7, 0.3),
    )
    for _ in range(blobs):
        centre = (rng.random() * width, rng.random() * height)
        radius = rng.random() * (width / 4.0) + 50.0
        _paint_disc(
            canvas,
            xs,
            ys,
            centre=centre,
            radius=radius,
            colors=(random_color(rng), random_color(rng)),
            opacity=(0.5, 0.1),
        )

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., :3] = np.clip(canvas * 255.0 + 0.5, 0, 255).astype(np.uint8)
    rgba[..., 3] = 255
    return Layer(name="base-gradient", pixels=rgba, blend=BlendMode.NORMAL)


# ----------------------------------------------------------------------
# Texture layers
# ----------------------------------------------------------------------
def polygon_points(
    x: float, y: float, size: float, sides: int, rng: DeterministicRNG
) -> List[Tuple[float, float]]:
    centre_x = x + size / 2.0
    centre_y = y + size / 2.0
    points = []
    for i in range(sides):
        angle = (i * 2.0 * math.pi) / sides
        radius = size / 2.0 * (0.7 + rng.random() * 0.3)
        points.append((centre_x + radius * math.cos(angle), centre_y + radius * math.sin(angle)))
    return points


def _fill(rng: DeterministicRNG, opacity: float) -> Tuple[int, int, int, int]:
    r, g, b = random_color(rng)
    return r, g, b, int(round(opacity * 255))


def _draw_tile(
    draw: ImageDraw.ImageDraw,
    x: int,
    y: int,
    size: int,
    index: int,
    rng: DeterministicRNG,
) -> None:
    kind = shape_kind(index)
    opacity = SHAPE_OPACITY[kind]
    if kind == "circle":
        draw.ellipse((x, y, x + size, y + size), fill=_fill(rng, opacity))
    elif kind == "rect":
        draw.rectangle((x, y, x + size - 1, y + size - 1), fill=_fill(rng, opacity))
    elif kind == "polygon":
        points = polygon_points(x, y, size, polygon_sides(index), rng)
        draw.polygon(points, fill=_fill(rng, opacity))
    else:
        for _ in range(5 + int(rng.random() * 10)):
            start = (x + rng.random() * size, y + rng.random() * size)
            end = (x + rng.random() * size, y + rng.random() * size)
            draw.line((start, end), fill=_fill(rng, opacity), width=1)


def texture_layer(width: int, height: int, index: int, rng: DeterministicRNG) -> Layer:
    """Tiled shapes drawn on a square canvas, then resized to the target."""

    side = max(width, height)
    size = tile_size(index)
    image = Image.new("RGBA", (side, side), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    for x in range(0, side, size):
        for y in range(0, side, size):
            if rng.random() > TILE_SKIP_THRESHOLD:
                _draw_tile(draw, x, y, size, index, rng)
    if (side, side) != (width, height):
        image = image.resize((width, height), Image.Resampling.LANCZOS)
    pixels = np.asarray(image, dtype=np.uint8).copy()
    return Layer(name=f"texture-{index}", pixels=pixels, blend=BlendMode.OVERLAY)


# ----------------------------------------------------------------------
# Noise
# ----------------------------------------------------------------------
def noise_layer(
    width: int, height: int, rng: DeterministicRNG, *, intensity: float = DEFAULT_NOISE_INTENSITY
) -> Layer:
    values = np.floor(rng.array((height, width)) * 255.0 * intensity).astype(np.uint8)
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., 0] = values
    rgba[..., 1] = values
    rgba[..., 2] = values
    rgba[..., 3] = 255
    return Layer(name="noise", pixels=rgba, blend=BlendMode.SOFT_LIGHT)


def high_frequency_noise_layer(width: int, height: int, rng: DeterministicRNG) -> Layer:
    """2x2 black/white blocks at low opacity, about half of them painted."""

    blocks_y = math.ceil(height / HF_BLOCK_SIZE)
    blocks_x = math.ceil(width / HF_BLOCK_SIZE)
    shape = (blocks_y, blocks_x)
    painted = rng.array(shape) > 0.5
    white = rng.array(shape) > 0.5
    low, high = HF_OPACITY_RANGE
    opacity = low + rng.array(shape) * (high - low)

    value = np.where(white, 255, 0).astype(np.uint8)
    alpha = np.where(painted, np.round(opacity * 255.0), 0).astype(np.uint8)

    def _expand(block: np.ndarray) -> np.ndarray:
        grown = np.repeat(np.repeat(block, HF_BLOCK_SIZE, axis=0), HF_BLOCK_SIZE, axis=1)
        return grown[:height, :width]

    rgba = np.empty((height, width, 4), dtype=np.uint8)
    grey = _expand(value)
    rgba[..., 0] = grey
    rgba[..., 1] = grey
    rgba[..., 2] = grey
    rgba[..., 3] = _expand(alpha)
    return Layer(name="hf-noise", pixels=rgba, blend=BlendMode.OVERLAY)


# ----------------------------------------------------------------------
# Full stack
# ----------------------------------------------------------------------
def texture_layers(
    width: int,
    height: int,
    count: int,
    rng: DeterministicRNG,
    *,
    workers: Optional[int] = None,
) -> List[Layer]:
    # Child sources are spawned up front so thread scheduling never changes the draws.
    children = [rng.spawn() for _ in range(count)]
    if not workers or workers <= 1 or count <= 1:
        return [texture_layer(width, height, i, child) for i, child in enumerate(children)]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(
            pool.map(lambda item: texture_layer(width, height, item[0], item[1]), enumerate(children))
        )


def synthesize_layers(
    width: int,
    height: int,
    rng: DeterministicRNG,
    *,
    texture_count: int = DEFAULT_TEXTURE_LAYERS,
    noise_intensity: float = DEFAULT_NOISE_INTENSITY,
    gradient_blobs: int = DEFAULT_GRADIENT_BLOBS,
    workers: Optional[int] = None,
) -> Sequence[Layer]:
    """Base gradient, then texture layers in index order, then noise."""

    base = base_gradient_layer(width, height, rng, blobs=gradient_blobs)
    textures = texture_layers(width, height, texture_count, rng, workers=workers)
    noise = noise_layer(width, height, rng, intensity=noise_intensity)
    return [base, *textures, noise]


__all__ = [
    "PALETTE",
    "SHAPE_KINDS",
    "base_gradient_layer",
    "high_frequency_noise_layer",
    "noise_layer",
    "polygon_points",
    "polygon_sides",
    "random_color",
    "shape_kind",
    "synthesize_layers",
    "texture_layer",
    "texture_layers",
    "tile_size",
]
