"""Helpers for content negotiation, header values and bracketed form keys."""

from __future__ import annotations

from typing import Mapping, Sequence
from urllib.parse import quote_plus

_NO_BODY_STATUSES = frozenset({204, 304})


def parse_accept(header: str) -> list[str]:
    """Split an Accept header into media types, dropping parameters."""
    parts = []
    for part in header.split(","):
        cut = part.find(";")
        if cut > 0:
            part = part[:cut]
        part = part.strip()
        if part:
            parts.append(part)
    return parts


def negotiate_format(accepted: Sequence[str], offered: Sequence[str]) -> str:
    """Return the first offered format that an accepted format matches.

    An empty ``accepted`` list accepts the first offer. A ``*`` in either
    string matches the rest of it. Returns an empty string when nothing
    matches; raises ValueError when nothing is offered.
    """
    if not offered:
        raise ValueError("you must provide at least one offer")
    if not accepted:
        return offered[0]
    for accept in accepted:
        for offer in offered:
            matched = 0
            for accept_char, offer_char in zip(accept, offer):
                if accept_char == "*" or offer_char == "*":
                    return offer
                if accept_char != offer_char:
                    break
                matched += 1
            if matched == len(accept):
                return offer
    return ""


def filter_flags(content: str) -> str:
    """Return a header value up to its first space or semicolon."""
    for index, char in enumerate(content):
        if char in " ;":
            return content[:index]
    return content


def body_allowed_for_status(status: int) -> bool:
    """Return False for status codes whose responses carry no body."""
    if 100 <= status <= 199:
        return False
    return status not in _NO_BODY_STATUSES


def escape_quotes(text: str) -> str:
    """Escape backslashes and double quotes for a quoted header parameter."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def bracket_map(values: Mapping[str, Sequence[str]], key: str) -> tuple[dict[str, str], bool]:
    """Collect ``key[name]`` entries into ``{name: first value}``.

    Returns the mapping and whether at least one such entry was found.
    """
    result: dict[str, str] = {}
    found = False
    for name, items in values.items():
        open_at = name.find("[")
        if open_at < 1 or name[:open_at] != key:
            continue
        rest = name[open_at + 1 :]
        close_at = rest.find("]")
        if close_at >= 1 and items:
            found = True
            result[rest[:close_at]] = items[0]
    return result, found


def content_disposition(filename: str) -> str:
    """Build an attachment Content-Disposition value for ``filename``."""
    if filename.isascii():
        return f'attachment; filename="{escape_quotes(filename)}"'
    return "attachment; filename*=UTF-8''" + quote_plus(filename, safe="")