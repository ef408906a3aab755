"""Thread-safe key/value storage scoped to a single request."""

from __future__ import annotations

import datetime
import threading
from typing import Any, Iterator, Mapping, Optional

_MISSING = object()
_ZERO_TIME = datetime.datetime.min
_ZERO_DURATION = datetime.timedelta(0)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _list_of(value: Any, check) -> Optional[list]:
    if isinstance(value, list) and all(check(item) for item in value):
        return value
    return None


def _string_keyed(value: Any) -> bool:
    return isinstance(value, dict) and all(isinstance(key, str) for key in value)


class KeyStore:
    """A lock-protected mapping of string keys to arbitrary values.

    The typed getters return the stored value when it has the expected
    type, and the type's zero value when the key is missing or holds
    something else.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, Any] = dict(initial) if initial else {}

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        with self._lock:
            self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``."""
        with self._lock:
            return self._data.get(key, default)

    def must_get(self, key: str) -> Any:
        """Return the value stored under ``key``; raise KeyError if absent."""
        with self._lock:
            value = self._data.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(f'Key "{key}" does not exist')
        return value

    def _typed(self, key: str, check, zero: Any) -> Any:
        value = self.get(key)
        return value if value is not None and check(value) else zero

    def get_string(self, key: str) -> str:
        """Return the value as a string, or an empty string."""
        return self._typed(key, lambda v: isinstance(v, str), "")

    def get_bool(self, key: str) -> bool:
        """Return the value as a boolean, or False."""
        return self._typed(key, lambda v: isinstance(v, bool), False)

    def get_int(self, key: str) -> int:
        """Return the value as an integer, or 0."""
        return self._typed(key, _is_int, 0)

    def get_float(self, key: str) -> float:
        """Return the value as a float, or 0.0."""
        return self._typed(key, lambda v: isinstance(v, float), 0.0)

    def get_time(self, key: str) -> datetime.datetime:
        """Return the value as a datetime, or ``datetime.min``."""
        return self._typed(key, lambda v: isinstance(v, datetime.datetime), _ZERO_TIME)

    def get_duration(self, key: str) -> datetime.timedelta:
        """Return the value as a timedelta, or a zero timedelta."""
        return self._typed(key, lambda v: isinstance(v, datetime.timedelta), _ZERO_DURATION)

    def get_int_list(self, key: str) -> list[int]:
        """Return the value as a list of integers, or an empty list."""
        found = _list_of(self.get(key), _is_int)
        return found if found is not None else []

    def get_float_list(self, key: str) -> list[float]:
        """Return the value as a list of floats, or an empty list."""
        found = _list_of(self.get(key), lambda v: isinstance(v, float))
        return found if found is not None else []

    def get_string_list(self, key: str) -> list[str]:
        """Return the value as a list of strings, or an empty list."""
        found = _list_of(self.get(key), lambda v: isinstance(v, str))
        return found if found is not None else []

    def get_string_map(self, key: str) -> dict[str, Any]:
        """Return the value as a string-keyed dict, or an empty dict."""
        return self._typed(key, _string_keyed, {})

    def get_string_map_string(self, key: str) -> dict[str, str]:
        """Return the value as a dict of strings to strings, or an empty dict."""
        return self._typed(
            key,
            lambda v: _string_keyed(v) and all(isinstance(x, str) for x in v.values()),
            {},
        )

    def get_string_map_string_list(self, key: str) -> dict[str, list[str]]:
        """Return the value as a dict of strings to string lists, or an empty dict."""
        return self._typed(
            key,
            lambda v: _string_keyed(v)
            and all(_list_of(x, lambda s: isinstance(s, str)) is not None for x in v.values()),
            {},
        )

    def copy(self) -> KeyStore:
        """Return an independent shallow copy of the store."""
        with self._lock:
            return KeyStore(self._data)

    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyStore):
            return NotImplemented
        return self.copy()._data == other.copy()._data

    def __repr__(self) -> str:
        with self._lock:
            return f"KeyStore({self._data!r})"