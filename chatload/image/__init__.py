"""Target-size synthetic WebP generation."""

from .codec import PillowWebPCodec
from .escalation import GeneratorOptions, generate, generate_many
from .interfaces import (
    BlendMode,
    CapabilityUnavailable,
    EncodedArtifact,
    EncodeFailure,
    GenerationError,
    GenerationRequest,
    InvalidParameter,
    Layer,
)
from .validation import validate_options, validate_request

__all__ = [
    "BlendMode",
    "CapabilityUnavailable",
    "EncodedArtifact",
    "EncodeFailure",
    "GenerationError",
    "GenerationRequest",
    "GeneratorOptions",
    "InvalidParameter",
    "Layer",
    "PillowWebPCodec",
    "generate",
    "generate_many",
    "validate_options",
    "validate_request",
]
