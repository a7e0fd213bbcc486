from __future__ import annotations

import pytest

from chatload.image import (
    GenerationRequest,
    GeneratorOptions,
    InvalidParameter,
    generate,
    validate_options,
    validate_request,
)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_size_kb": 0},
        {"min_size_kb": 60, "max_size_kb": 50},
        {"width": 99},
        {"height": 10},
        {"quality": 0},
        {"quality": 101},
    ],
)
def test_invalid_requests_are_rejected(kwargs) -> None:
    params = {"width": 800, "height": 600, "min_size_kb": 50, "max_size_kb": 200, "quality": 80}
    params.update(kwargs)
    with pytest.raises(InvalidParameter):
        validate_request(GenerationRequest(**params))


def test_single_point_range_and_minimum_canvas_are_valid() -> None:
    request = GenerationRequest(width=100, height=100, min_size_kb=1, max_size_kb=1, quality=1)
    assert validate_request(request) is request


def test_invalid_parameter_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        validate_request(GenerationRequest(width=800, height=600, min_size_kb=5, max_size_kb=4))


def test_validation_is_idempotent() -> None:
    request = GenerationRequest(width=640, height=480, min_size_kb=10, max_size_kb=20)
    assert validate_request(validate_request(request)) == request


@pytest.mark.parametrize(
    "kwargs",
    [
        {"texture_layers": -1},
        {"gradient_blobs": -3},
        {"noise_intensity": 1.5},
        {"noise_intensity": -0.3},
        {"workers": 0},
    ],
)
def test_invalid_options_are_rejected(kwargs) -> None:
    with pytest.raises(InvalidParameter):
        validate_options(GeneratorOptions(**kwargs))


def test_boundary_options_are_valid() -> None:
    options = GeneratorOptions(texture_layers=0, gradient_blobs=0, noise_intensity=1.0, workers=1)
    assert validate_options(options) is options
    assert validate_options(GeneratorOptions(noise_intensity=0.0, workers=None)).workers is None


def test_generate_rejects_bad_options_before_encoding(scripted_codec) -> None:
    codec = scripted_codec([1024])
    request = GenerationRequest(width=200, height=200, min_size_kb=1, max_size_kb=1)
    with pytest.raises(InvalidParameter):
        generate(request, codec=codec, options=GeneratorOptions(noise_intensity=5.0))
    assert codec.encodes == []
