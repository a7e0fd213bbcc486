from __future__ import annotations

from typing import TYPE_CHECKING

from .interfaces import GenerationRequest, InvalidParameter

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .escalation import GeneratorOptions

MIN_DIMENSION = 100
MIN_SIZE_KB = 1


def validate_request(request: GenerationRequest) -> GenerationRequest:
    """Reject a request before any pixels are synthesised.

    Returns the request unchanged so the call can be chained.
    """

    if request.min_size_kb < MIN_SIZE_KB:
        raise InvalidParameter(f"min_size_kb must be >= {MIN_SIZE_KB}, got {request.min_size_kb}")
    if request.max_size_kb < request.min_size_kb:
        raise InvalidParameter(
            f"max_size_kb ({request.max_size_kb}) must be >= min_size_kb ({request.min_size_kb})"
        )
    if request.width < MIN_DIMENSION or request.height < MIN_DIMENSION:
        raise InvalidParameter(
            f"width and height must be >= {MIN_DIMENSION}px, got {request.width}x{request.height}"
        )
    if not 1 <= request.quality <= 100:
        raise InvalidParameter(f"quality must be within 1-100, got {request.quality}")
    return request


def validate_options(options: "GeneratorOptions") -> "GeneratorOptions":
    """Reject layer-synthesis settings that would wrap pixel values or drop layers."""

    if options.texture_layers < 0:
        raise InvalidParameter(f"texture_layers must be >= 0, got {options.texture_layers}")
    if options.gradient_blobs < 0:
        raise InvalidParameter(f"gradient_blobs must be >= 0, got {options.gradient_blobs}")
    if not 0.0 <= options.noise_intensity <= 1.0:
        raise InvalidParameter(f"noise_intensity must be within 0-1, got {options.noise_intensity}")
    if options.workers is not None and options.workers < 1:
        raise InvalidParameter(f"workers must be >= 1 when set, got {options.workers}")
    return options


__all__ = ["validate_options", "validate_request", "MIN_DIMENSION", "MIN_SIZE_KB"]
