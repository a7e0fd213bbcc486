"""Target-size WebP generation.

Tier 0 renders the layered composite. When the encoded result is still
below the frozen target size, Tier 1 overlays 2x2 block noise and Tier 2
upscales with a nearest-neighbour kernel. Each tier runs at most once.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np

from chatload.rng import DeterministicRNG

from .codec import PillowWebPCodec
from .compositor import MIN_EFFORT, composite_onto, render
from .interfaces import EncodedArtifact, GenerationRequest, ImageCodecProtocol
from .layers import (
    DEFAULT_GRADIENT_BLOBS,
    DEFAULT_NOISE_INTENSITY,
    DEFAULT_TEXTURE_LAYERS,
    high_frequency_noise_layer,
    synthesize_layers,
)
from .validation import validate_options, validate_request

LOGGER = logging.getLogger("chatload.image")

NOISE_QUALITY = 95
UPSCALE_QUALITY = 100
MAX_ENCODE_PASSES = 3


@dataclass(frozen=True)
class GeneratorOptions:
    texture_layers: int = DEFAULT_TEXTURE_LAYERS
    noise_intensity: float = DEFAULT_NOISE_INTENSITY
    gradient_blobs: int = DEFAULT_GRADIENT_BLOBS
    workers: Optional[int] = None


def size_kb(blob: bytes) -> int:
    return len(blob) // 1024


def draw_target_size(request: GenerationRequest, rng: DeterministicRNG) -> int:
    return rng.randint(request.min_size_kb, request.max_size_kb)


def upscale_dimensions(width: int, height: int, target_kb: int, current_bytes: int) -> tuple[int, int]:
    """Dimensions for the upscale tier, always at least one pixel larger per axis."""

    current_kb = max(current_bytes, 1) / 1024.0
    scale = math.sqrt(target_kb / current_kb)
    new_width = max(int(math.floor(width * scale)), width + 1)
    new_height = max(int(math.floor(height * scale)), height + 1)
    return new_width, new_height


@dataclass
class _Candidate:
    blob: bytes
    pixels: Optional[np.ndarray]
    width: int
    height: int
    tier: int


class _CountingEncoder:
    def __init__(self, codec: ImageCodecProtocol) -> None:
        self._codec = codec
        self.passes = 0

    def encode(self, pixels: np.ndarray, *, quality: int, effort: int) -> bytes:
        self.passes += 1
        return self._codec.encode(pixels, quality=quality, effort=effort)

    def decode(self, blob: bytes) -> np.ndarray:
        return self._codec.decode(blob)

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        return self._codec.resize(pixels, width, height)


def _keep_larger(current: _Candidate, candidate: _Candidate) -> _Candidate:
    if len(candidate.blob) >= len(current.blob):
        return candidate
    LOGGER.debug(
        "tier %d output %d bytes is smaller than tier %d (%d bytes); keeping previous",
        candidate.tier,
        len(candidate.blob),
        current.tier,
        len(current.blob),
    )
    return current


def _pixels_of(candidate: _Candidate, codec: ImageCodecProtocol) -> np.ndarray:
    if candidate.pixels is None:
        candidate.pixels = codec.decode(candidate.blob)
    return candidate.pixels


def generate(
    request: GenerationRequest,
    *,
    rng: Optional[DeterministicRNG] = None,
    codec: Optional[ImageCodecProtocol] = None,
    options: Optional[GeneratorOptions] = None,
) -> EncodedArtifact:
    """Produce a WebP whose size is pushed up towards a random target in range.

    Raises ``InvalidParameter`` before any work for bad requests or options,
    ``CapabilityUnavailable`` when no WebP encoder exists and
    ``EncodeFailure`` when any encode step fails. Falling short of the
    target after the upscale tier is not an error.
    """

    validate_request(request)
    options = validate_options(options or GeneratorOptions())
    rng = rng or DeterministicRNG()
    encoder = _CountingEncoder(codec or PillowWebPCodec())

    target_kb = draw_target_size(request, rng)
    LOGGER.info(
        "target size %d KB for %dx%d (range %d-%d KB)",
        target_kb,
        request.width,
        request.height,
        request.min_size_kb,
        request.max_size_kb,
    )

    layers = synthesize_layers(
        request.width,
        request.height,
        rng,
        texture_count=options.texture_layers,
        noise_intensity=options.noise_intensity,
        gradient_blobs=options.gradient_blobs,
        workers=options.workers,
    )
    best = _Candidate(
        blob=render(layers, encoder),
        pixels=None,
        width=request.width,
        height=request.height,
        tier=0,
    )
    LOGGER.info("tier 0 composite: %d KB", size_kb(best.blob))

    if size_kb(best.blob) < target_kb:
        base = _pixels_of(best, encoder)
        height, width = base.shape[:2]
        noisy = composite_onto(base, [high_frequency_noise_layer(width, height, rng)])
        blob = encoder.encode(noisy, quality=NOISE_QUALITY, effort=MIN_EFFORT)
        best = _keep_larger(best, _Candidate(blob, None, width, height, tier=1))
        LOGGER.info("tier 1 noise overlay: %d KB", size_kb(best.blob))

    if size_kb(best.blob) < target_kb:
        source = _pixels_of(best, encoder)
        height, width = source.shape[:2]
        new_width, new_height = upscale_dimensions(width, height, target_kb, len(best.blob))
        upscaled = encoder.resize(source, new_width, new_height)
        blob = encoder.encode(upscaled, quality=UPSCALE_QUALITY, effort=MIN_EFFORT)
        best = _keep_larger(best, _Candidate(blob, upscaled, new_width, new_height, tier=2))
        LOGGER.info(
            "tier 2 upscale to %dx%d: %d KB", best.width, best.height, size_kb(best.blob)
        )

    if size_kb(best.blob) < target_kb:
        LOGGER.warning(
            "best effort result %d KB is below target %d KB", size_kb(best.blob), target_kb
        )

    return EncodedArtifact(
        data=best.blob,
        width=best.width,
        height=best.height,
        size_kb=size_kb(best.blob),
        target_kb=target_kb,
        tier=best.tier,
        encode_passes=encoder.passes,
    )


def generate_many(
    requests: Sequence[GenerationRequest],
    *,
    seed: Optional[int] = None,
    codec_factory: Optional[Callable[[], ImageCodecProtocol]] = None,
    options: Optional[GeneratorOptions] = None,
    workers: int = 4,
) -> List[EncodedArtifact]:
    """Run independent requests on a thread pool; results follow input order.

    Every request is validated before any codec is built, so a bad batch
    fails with ``InvalidParameter`` and no work done.
    """

    for request in requests:
        validate_request(request)
    options = validate_options(options or GeneratorOptions())
    root = DeterministicRNG(seed)
    sources = [root.spawn() for _ in requests]
    factory = codec_factory or PillowWebPCodec

    def _run(item: tuple[GenerationRequest, DeterministicRNG]) -> EncodedArtifact:
        request, source = item
        return generate(request, rng=source, codec=factory(), options=options)

    if workers <= 1 or len(requests) <= 1:
        return [_run(item) for item in zip(requests, sources)]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_run, zip(requests, sources)))


__all__ = [
    "GeneratorOptions",
    "MAX_ENCODE_PASSES",
    "NOISE_QUALITY",
    "UPSCALE_QUALITY",
    "draw_target_size",
    "generate",
    "generate_many",
    "size_kb",
    "upscale_dimensions",
]
