from __future__ import annotations

"""Load-testing utilities for a chat backend."""

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .config import LoadTestConfig, load_config
    from .image import GenerationRequest, generate

__all__ = ["LoadTestConfig", "load_config", "GenerationRequest", "generate"]


def __getattr__(name: str) -> Any:  # pragma: no cover - dispatch helper
    if name in {"LoadTestConfig", "load_config"}:
        module = import_module(".config", __name__)
    elif name in {"GenerationRequest", "generate"}:
        module = import_module(".image", __name__)
    else:
        raise AttributeError(name)

    value = getattr(module, name)
    globals()[name] = value
    return value
