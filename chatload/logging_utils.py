from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO, TypeVar, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

T = TypeVar("T")

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "WARNING": 30, "ERROR": 40}
_STYLES = {"DEBUG": "dim", "INFO": "white", "WARN": "yellow", "WARNING": "yellow", "ERROR": "red"}


def _normalize_level(level: str) -> str:
    level = level.upper().strip()
    return "WARN" if level == "WARNING" else level


@dataclass
class RunLogger:
    """Step-tagged console log for CLI runs, optionally mirrored to a file."""

    console: Console
    level: str = "INFO"
    logfile: Optional[Path] = None
    _file: Optional[TextIO] = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        self.level = _normalize_level(self.level)
        if self.logfile:
            self.logfile.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.logfile.open("a", encoding="utf-8")

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    def enabled_for(self, level: str) -> bool:
        return _LEVELS.get(_normalize_level(level), 100) >= _LEVELS.get(self.level, 20)

    def log(self, step: str, message: str, level: str = "INFO", elapsed_ms: Optional[float] = None) -> None:
        level = _normalize_level(level)
        if not self.enabled_for(level):
            return
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        suffix = f" (ms={elapsed_ms:.0f})" if elapsed_ms is not None else ""
        line = f"[{stamp}] [{level.ljust(5)}] [{step.upper().ljust(7)}] {message}{suffix}"
        self.console.print(line, style=_STYLES.get(level, "white"), highlight=False, soft_wrap=True)
        if self._file:
            self._file.write(line + "\n")
            self._file.flush()

    def timed(
        self,
        step: str,
        message: Union[str, Callable[[T], str]],
        func: Callable[..., T],
        *args,
        level: str = "INFO",
        **kwargs,
    ) -> T:
        """Run ``func`` and log how long it took; errors are logged and re-raised."""

        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self.log(step, f"error: {exc}", level="ERROR", elapsed_ms=(time.perf_counter() - start) * 1000.0)
            raise
        elapsed = (time.perf_counter() - start) * 1000.0
        self.log(step, message(result) if callable(message) else message, level=level, elapsed_ms=elapsed)
        return result


def _console() -> Console:
    return Console(theme=Theme({"repr.number": "cyan"}), stderr=True)


def configure_logging(level: str = "INFO") -> None:
    """Route ``chatload.*`` library loggers through rich."""

    logging.basicConfig(
        level=_LEVELS.get(_normalize_level(level), logging.INFO),
        format="%(name)s - %(message)s",
        handlers=[RichHandler(console=_console(), show_path=False)],
        force=True,
    )


def create_logger(level: str, logfile: Optional[Path]) -> RunLogger:
    return RunLogger(console=_console(), level=level, logfile=logfile)


__all__ = ["RunLogger", "configure_logging", "create_logger"]
