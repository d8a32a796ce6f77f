"""Console logging with optional ANSI colours."""

from __future__ import annotations

import inspect
import sys
from typing import TextIO

COLOR_RED = "\033[91m"
COLOR_YELLOW = "\033[93m"
COLOR_GREEN = "\033[32m"
COLOR_NORMAL = "\033[0m"

_colors = {
    "red": COLOR_RED,
    "yellow": COLOR_YELLOW,
    "green": COLOR_GREEN,
    "normal": COLOR_NORMAL,
}


def disable_colored_output() -> None:
    """Make every further message print without colour."""
    _colors.update(red=COLOR_NORMAL, yellow=COLOR_NORMAL, green=COLOR_NORMAL, normal=COLOR_NORMAL)


def _location() -> str:
    frame = inspect.currentframe()
    # _location -> _emit -> public logging function -> caller
    for _ in range(3):
        if frame is None:
            return "?:0"
        frame = frame.f_back
    if frame is None:
        return "?:0"
    return f"{frame.f_code.co_name}:{frame.f_lineno}"


def _emit(stream: TextIO, label: str, message: object, color: str = "") -> None:
    normal = _colors["normal"] if color else ""
    print(f"{color}[ {label} @ {_location()} ] {message}{normal}", file=stream)


def info(message: object) -> None:
    """Print a plain message to standard output."""
    _emit(sys.stdout, "PRINT", message)


def error(message: object) -> None:
    """Print an error message to standard error."""
    _emit(sys.stderr, "ERROR", message, _colors["red"])


def warn(message: object) -> None:
    """Print a warning message to standard error."""
    _emit(sys.stderr, "WARNING", message, _colors["yellow"])


def success(message: object) -> None:
    """Print a success message to standard error."""
    _emit(sys.stderr, "SUCCESS", message, _colors["green"])