"""Errors attached to a request context, with typing flags and JSON views."""

from __future__ import annotations

import dataclasses
import enum
import json
from collections.abc import Mapping
from typing import Any


class ErrorType(enum.IntFlag):
    """Bit flags classifying an :class:`Error`."""

    PRIVATE = 1 << 0
    PUBLIC = 1 << 1
    RENDER = 1 << 62
    BIND = 1 << 63
    ANY = (1 << 64) - 1


def _format_value(value: Any) -> str:
    """Render a value the way the plain-text error report shows it."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda item: str(item[0]))
        inner = " ".join(f"{_format_value(k)}:{_format_value(v)}" for k, v in items)
        return f"map[{inner}]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format_value(v) for v in value) + "]"
    return str(value)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _dumps(data: Any) -> str:
    text = json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


class Error(Exception):
    """An error recorded during request handling, wrapping the original one."""

    def __init__(
        self,
        err: BaseException,
        type: ErrorType = ErrorType.PRIVATE,
        meta: Any = None,
    ) -> None:
        super().__init__(err)
        self.err = err
        self.type = type
        self.meta = meta
        self.__cause__ = err

    def __str__(self) -> str:
        return str(self.err)

    def __repr__(self) -> str:
        return f"Error(err={self.err!r}, type={self.type!r}, meta={self.meta!r})"

    def set_type(self, flags: ErrorType) -> Error:
        """Set the error's type and return the error itself."""
        self.type = flags
        return self

    def set_meta(self, data: Any) -> Error:
        """Set the error's metadata and return the error itself."""
        self.meta = data
        return self

    def to_json(self) -> Any:
        """Return a JSON-ready view of the error."""
        data: dict[str, Any] = {}
        if self.meta is not None:
            if dataclasses.is_dataclass(self.meta) and not isinstance(self.meta, type):
                return self.meta
            if isinstance(self.meta, Mapping):
                data.update((str(key), value) for key, value in self.meta.items())
            else:
                data["meta"] = self.meta
        data.setdefault("error", str(self))
        return data

    def marshal_json(self) -> str:
        """Serialise :meth:`to_json` as compact JSON."""
        return _dumps(self.to_json())

    def is_type(self, flags: ErrorType) -> bool:
        """Return True if the error has any of the given type flags."""
        return (self.type & flags) > 0


class ErrorList(list):
    """A list of :class:`Error` objects collected for one request."""

    def by_type(self, typ: ErrorType) -> ErrorList:
        """Return the errors carrying any of the given type flags."""
        if not self:
            return ErrorList()
        if typ == ErrorType.ANY:
            return self
        return ErrorList(err for err in self if err.is_type(typ))

    def last(self) -> Error | None:
        """Return the most recent error, or None when empty."""
        return self[-1] if self else None

    def errors(self) -> list[str]:
        """Return the messages of all errors."""
        return [str(err) for err in self]

    def to_json(self) -> Any:
        """Return None, a single error's JSON view, or a list of them."""
        if not self:
            return None
        if len(self) == 1:
            return self[0].to_json()
        return [err.to_json() for err in self]

    def marshal_json(self) -> str:
        """Serialise :meth:`to_json` as compact JSON."""
        return _dumps(self.to_json())

    def __str__(self) -> str:
        lines = []
        for number, err in enumerate(self, start=1):
            lines.append(f"Error #{number:02d}: {err.err}\n")
            if err.meta is not None:
                lines.append(f"     Meta: {_format_value(err.meta)}\n")
        return "".join(lines)