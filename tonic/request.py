"""HTTP request and response objects used by a request context."""

from __future__ import annotations

import enum
import io
import os
import posixpath
from dataclasses import dataclass, field
from email.message import Message
from email.utils import collapse_rfc2231_value
from typing import IO, Any, Iterable, Iterator, Mapping, Optional, Union
from urllib.parse import parse_qs, urlsplit, urlunsplit

from tonic.debug import debug_print

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
_FORM_URLENCODED = "application/x-www-form-urlencoded"
_MULTIPART_FORM = "multipart/form-data"

BodyType = Union[bytes, bytearray, str, IO[bytes], None]
HeaderInput = Union["Headers", Mapping[str, Any], Iterable[tuple], None]


class RequestError(Exception):
    """Base class for errors raised while reading a request."""


class NotMultipartError(RequestError):
    """The request body is not multipart/form-data."""


class MultipartError(RequestError):
    """The multipart body is malformed."""


class NoCookieError(RequestError, LookupError):
    """The named cookie is not present in the request."""


def _canonical_key(key: str) -> str:
    """Canonicalise a header name: ``content-type`` becomes ``Content-Type``."""
    if not key or any(char not in _TOKEN_CHARS for char in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _parse_media_type(value: str) -> tuple[str, dict[str, str]]:
    """Split a header value such as a content type into its type and parameters."""
    if not value:
        return "", {}
    message = Message()
    message["x-media"] = value
    params = message.get_params(header="x-media")
    if not params:
        return "", {}
    media = params[0][0].strip().lower()
    return media, {
        key.lower(): collapse_rfc2231_value(val) for key, val in params[1:]
    }


class Headers:
    """Case-insensitive, multi-valued HTTP header collection."""

    def __init__(self, initial: HeaderInput = None) -> None:
        self._values: dict[str, list[str]] = {}
        if initial is None:
            return
        pairs = initial.items() if isinstance(initial, (Mapping, Headers)) else initial
        for key, value in pairs:
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(key, item)
            else:
                self.add(key, value)

    def get(self, key: str, default: str = "") -> str:
        """Return the first value for ``key``, or ``default``."""
        values = self._values.get(_canonical_key(key))
        return values[0] if values else default

    def set(self, key: str, value: str) -> None:
        """Replace all values for ``key`` with ``value``."""
        self._values[_canonical_key(key)] = [str(value)]

    def add(self, key: str, value: str) -> None:
        """Append ``value`` to the values for ``key``."""
        self._values.setdefault(_canonical_key(key), []).append(str(value))

    def delete(self, key: str) -> None:
        """Remove every value for ``key``."""
        self._values.pop(_canonical_key(key), None)

    def get_all(self, key: str) -> list[str]:
        """Return all values for ``key``."""
        return list(self._values.get(_canonical_key(key), []))

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for key, values in self._values.items():
            yield key, list(values)

    def copy(self) -> Headers:
        return Headers(self.items())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _canonical_key(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"


@dataclass
class UploadedFile:
    """A file received in a multipart form."""

    filename: str
    content: Optional[bytes] = None
    headers: Headers = field(default_factory=Headers)

    @property
    def size(self) -> int:
        return len(self.content) if self.content is not None else 0

    def save(self, dst: Union[str, os.PathLike], mode: int = 0o750) -> None:
        """Write the file to ``dst``, creating its directory with ``mode``."""
        if self.content is None:
            raise FileNotFoundError(f"uploaded file {self.filename!r} has no content")
        target = os.fspath(dst)
        directory = os.path.dirname(target) or "."
        os.makedirs(directory, mode=mode, exist_ok=True)
        os.chmod(directory, mode)
        with open(target, "wb") as out:
            out.write(self.content)


def _as_stream(body: BodyType) -> Optional[IO[bytes]]:
    if body is None:
        return None
    if isinstance(body, str):
        return io.BytesIO(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray)):
        return io.BytesIO(bytes(body))
    return body


def _parse_multipart(
    raw: bytes, boundary: str
) -> tuple[dict[str, list[str]], dict[str, list[UploadedFile]]]:
    chunks = (b"\r\n" + raw).split(b"\r\n--" + boundary.encode("utf-8"))
    if len(chunks) < 2:
        raise MultipartError("multipart: NextPart: EOF")
    values: dict[str, list[str]] = {}
    files: dict[str, list[UploadedFile]] = {}
    for chunk in chunks[1:]:
        if chunk.startswith(b"--"):
            return values, files
        if chunk.startswith(b"\r\n"):
            chunk = chunk[2:]
        elif chunk.startswith(b"\n"):
            chunk = chunk[1:]
        else:
            raise MultipartError("multipart: malformed part boundary")
        head, separator, content = chunk.partition(b"\r\n\r\n")
        if not separator:
            raise MultipartError("multipart: malformed part headers")
        part_headers = Headers()
        for line in head.split(b"\r\n"):
            if not line:
                continue
            name, colon, value = line.decode("utf-8", "replace").partition(":")
            if not colon:
                raise MultipartError(f"multipart: malformed header line {line!r}")
            part_headers.add(name.strip(), value.strip())
        disposition, params = _parse_media_type(part_headers.get("Content-Disposition"))
        name = params.get("name", "")
        if disposition != "form-data" or not name:
            continue
        filename = params.get("filename", "")
        if filename:
            files.setdefault(name, []).append(
                UploadedFile(
                    filename=posixpath.basename(filename),
                    content=content,
                    headers=part_headers,
                )
            )
        else:
            values.setdefault(name, []).append(content.decode("utf-8", "replace"))
    raise MultipartError("multipart: NextPart: EOF")


class Request:
    """An incoming HTTP request."""

    def __init__(
        self,
        method: str = "GET",
        url: Optional[str] = "/",
        body: BodyType = None,
        headers: HeaderInput = None,
        remote_addr: str = "",
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers if isinstance(headers, Headers) else Headers(headers)
        self.remote_addr = remote_addr
        self._body = _as_stream(body)
        self._parsed = False
        self._form: dict[str, list[str]] = {}
        self._files: dict[str, list[UploadedFile]] = {}
        self._multipart_error: Optional[RequestError] = None

    @property
    def body(self) -> Optional[IO[bytes]]:
        return self._body

    @property
    def path(self) -> str:
        return urlsplit(self.url).path if self.url is not None else ""

    @path.setter
    def path(self, value: str) -> None:
        parts = urlsplit(self.url or "")
        self.url = urlunsplit(parts._replace(path=value))

    def query(self) -> dict[str, list[str]]:
        """Return the parsed query string; empty when the request has no URL."""
        if self.url is None:
            return {}
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    def _read_all(self) -> bytes:
        return self._body.read() if self._body is not None else b""

    def _parse_body(self) -> None:
        if self._parsed:
            return
        self._parsed = True
        media, params = _parse_media_type(self.headers.get("Content-Type"))
        if self.method.upper() in _BODY_METHODS and media == _FORM_URLENCODED:
            text = self._read_all().decode("utf-8", "replace")
            for key, values in parse_qs(text, keep_blank_values=True).items():
                self._form.setdefault(key, []).extend(values)
        if media != _MULTIPART_FORM:
            self._multipart_error = NotMultipartError("request Content-Type isn't multipart/form-data")
            return
        boundary = params.get("boundary", "")
        if not boundary:
            self._multipart_error = MultipartError("no multipart boundary param in Content-Type")
            return
        try:
            values, files = _parse_multipart(self._read_all(), boundary)
        except MultipartError as exc:
            self._multipart_error = exc
            return
        for key, items in values.items():
            self._form.setdefault(key, []).extend(items)
        self._files = files

    def post_form(self) -> dict[str, list[str]]:
        """Return the form values sent in the body.

        Raises MultipartError when a multipart body is malformed.
        """
        self._parse_body()
        if isinstance(self._multipart_error, MultipartError):
            raise self._multipart_error
        return self._form

    def files(self) -> dict[str, list[UploadedFile]]:
        """Return the uploaded files of a multipart body.

        Raises NotMultipartError or MultipartError when there is no valid multipart body.
        """
        self._parse_body()
        if self._multipart_error is not None:
            raise self._multipart_error
        return self._files

    def cookie(self, name: str) -> str:
        """Return the raw value of the named cookie."""
        for line in self.headers.get_all("Cookie"):
            for part in line.split(";"):
                key, _, value = part.strip().partition("=")
                if key.strip() != name:
                    continue
                value = value.strip()
                if len(value) > 1 and value[0] == value[-1] == '"':
                    value = value[1:-1]
                return value
        raise NoCookieError("named cookie not present")

    def read_body(self) -> bytes:
        """Read the rest of the request body."""
        if self._body is None:
            raise RequestError("cannot read nil body")
        return self._body.read()


class SameSite(enum.IntEnum):
    """The SameSite attribute of a cookie."""

    NOT_SET = 0
    DEFAULT = 1
    LAX = 2
    STRICT = 3
    NONE = 4


_SAME_SITE_TEXT = {SameSite.LAX: "Lax", SameSite.STRICT: "Strict", SameSite.NONE: "None"}


def _valid_cookie_value_char(char: str) -> bool:
    return 0x20 <= ord(char) < 0x7F and char not in '";\\'


def _sanitize_cookie_value(value: str) -> str:
    cleaned = "".join(char for char in value if _valid_cookie_value_char(char))
    if " " in cleaned or "," in cleaned:
        return f'"{cleaned}"'
    return cleaned


def _sanitize_cookie_path(path: str) -> str:
    return "".join(char for char in path if 0x20 <= ord(char) < 0x7F and char != ";")


class Response:
    """An outgoing HTTP response collected in memory."""

    def __init__(self) -> None:
        self.status = 200
        self.headers = Headers()
        self.body = bytearray()
        self.size = -1
        self.sent_headers: Optional[Headers] = None
        self._written = False

    def write_header(self, code: int) -> None:
        """Set the status code unless the headers have already been sent."""
        if code > 0 and code != self.status:
            if self._written:
                debug_print(
                    "[WARNING] Headers were already written. Wanted to override status code %d with %d",
                    self.status,
                    code,
                )
                return
            self.status = code

    def write_header_now(self) -> None:
        """Send the status line and headers if not yet sent."""
        if not self._written:
            self._written = True
            self.size = 0
            self.sent_headers = self.headers.copy()

    def write(self, data: Union[bytes, bytearray, str]) -> int:
        """Append data to the body, sending headers first."""
        chunk = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self.write_header_now()
        self.body.extend(chunk)
        self.size += len(chunk)
        return len(chunk)

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: int = 0,
        path: str = "",
        domain: str = "",
        same_site: SameSite = SameSite.NOT_SET,
        secure: bool = False,
        http_only: bool = False,
    ) -> None:
        """Add a Set-Cookie header; cookies with invalid names are dropped."""
        if not name or any(char not in _TOKEN_CHARS for char in name):
            return
        parts = [f"{name}={_sanitize_cookie_value(value)}"]
        if path:
            parts.append(f"Path={_sanitize_cookie_path(path)}")
        if domain:
            parts.append(f"Domain={domain.lstrip('.')}")
        if max_age > 0:
            parts.append(f"Max-Age={max_age}")
        elif max_age < 0:
            parts.append("Max-Age=0")
        if http_only:
            parts.append("HttpOnly")
        if secure:
            parts.append("Secure")
        if same_site in _SAME_SITE_TEXT:
            parts.append(f"SameSite={_SAME_SITE_TEXT[same_site]}")
        self.headers.add("Set-Cookie", "; ".join(parts))

    def written(self) -> bool:
        """Return True once the headers have been sent."""
        return self._written

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")