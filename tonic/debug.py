"""Debug-mode logging helpers."""

from __future__ import annotations

import os
import platform
import re
import sys
from dataclasses import dataclass
from typing import IO, Any, Callable, Optional, Sequence

MIN_PYTHON_MINOR = 10
_PREFIX = "[TONIC-debug] "

RoutePrinter = Callable[[str, str, str, int], None]
PrintFunc = Callable[..., None]


@dataclass
class _Settings:
    debugging: bool
    writer: Optional[IO[str]] = None
    error_writer: Optional[IO[str]] = None
    route_printer: Optional[RoutePrinter] = None
    print_func: Optional[PrintFunc] = None

    def out(self) -> IO[str]:
        return self.writer if self.writer is not None else sys.stdout

    def err(self) -> IO[str]:
        return self.error_writer if self.error_writer is not None else sys.stderr


_settings = _Settings(debugging=os.environ.get("TONIC_MODE", "debug") == "debug")


def set_debugging(enabled: bool) -> None:
    """Turn debug output on or off."""
    _settings.debugging = bool(enabled)


def is_debugging() -> bool:
    """Return True when debug output is enabled."""
    return _settings.debugging


def set_writer(writer: Optional[IO[str]]) -> None:
    """Set the stream for debug output; None means standard output."""
    _settings.writer = writer


def set_error_writer(writer: Optional[IO[str]]) -> None:
    """Set the stream for debug errors; None means standard error."""
    _settings.error_writer = writer


def set_route_printer(func: Optional[RoutePrinter]) -> None:
    """Set a callback that replaces the default route line."""
    _settings.route_printer = func


def set_print_func(func: Optional[PrintFunc]) -> None:
    """Set a callback that replaces the default debug printer."""
    _settings.print_func = func


def name_of_function(func: Any) -> str:
    """Return the dotted name of a callable, or an empty string for None."""
    if func is None:
        return ""
    qualname = getattr(func, "__qualname__", None) or type(func).__qualname__
    module = getattr(func, "__module__", None) or type(func).__module__
    return f"{module}.{qualname}" if module else qualname


def debug_print(format: str, *args: Any) -> None:
    """Write a formatted debug line when debugging is enabled."""
    if not _settings.debugging:
        return
    if _settings.print_func is not None:
        _settings.print_func(format, *args)
        return
    if not format.endswith("\n"):
        format += "\n"
    message = format % args if args else format
    _settings.out().write(_PREFIX + message)


def debug_print_route(http_method: str, absolute_path: str, handlers: Sequence[Any]) -> None:
    """Report a registered route and its final handler."""
    if not _settings.debugging:
        return
    count = len(handlers)
    handler_name = name_of_function(handlers[-1] if handlers else None)
    if _settings.route_printer is None:
        debug_print(
            "%-6s %-25s --> %s (%d handlers)\n",
            http_method,
            absolute_path,
            handler_name,
            count,
        )
    else:
        _settings.route_printer(http_method, absolute_path, handler_name, count)


def debug_print_error(err: Optional[BaseException]) -> None:
    """Write an error to the error stream when debugging is enabled."""
    if err is not None and _settings.debugging:
        _settings.err().write(f"{_PREFIX}[ERROR] {err}\n")


def get_min_ver(version: str) -> int:
    """Return the minor component of a dotted version string.

    Raises ValueError when that component is not a non-negative integer.
    """
    first = version.find(".")
    last = version.rfind(".")
    part = version[first + 1 :] if first == last else version[first + 1 : last]
    if not re.fullmatch(r"[0-9]+", part):
        raise ValueError(f"invalid minor version in {version!r}")
    return int(part)


def debug_print_warning_default(python_version: Optional[str] = None) -> None:
    """Warn about the interpreter version and the default middleware."""
    version = python_version if python_version is not None else platform.python_version()
    try:
        minor = get_min_ver(version)
    except ValueError:
        minor = None
    if minor is not None and minor < MIN_PYTHON_MINOR:
        debug_print(f"[WARNING] Now tonic requires Python 3.{MIN_PYTHON_MINOR}+.\n\n")
    debug_print(
        "[WARNING] Creating an Engine instance with the Logger and Recovery "
        "middleware already attached.\n\n"
    )


def debug_print_warning_new() -> None:
    """Warn that debug mode is active."""
    debug_print(
        '[WARNING] Running in "debug" mode. Switch to "release" mode in production.\n'
        " - using env:\texport TONIC_MODE=release\n"
        " - using code:\ttonic.debug.set_debugging(False)\n\n"
    )


def debug_print_warning_set_html_template() -> None:
    """Warn that setting the HTML template is not thread-safe."""
    debug_print(
        "[WARNING] Since set_html_template() is NOT thread-safe. It should only be called\n"
        "at initialization. ie. before any route is registered or the router is "
        "listening in a socket:\n\n"
        "\trouter = tonic.default()\n"
        "\trouter.set_html_template(template)  # << good place\n\n"
    )