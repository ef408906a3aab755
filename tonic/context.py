"""The per-request context: handler chain, inputs, metadata and response helpers."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union
from urllib.parse import quote_plus, unquote_plus

from tonic import negotiation
from tonic.debug import debug_print, name_of_function
from tonic.errors import Error, ErrorList, ErrorType
from tonic.request import (
    NotMultipartError,
    Request,
    RequestError,
    Response,
    SameSite,
    UploadedFile,
)
from tonic.store import KeyStore

ABORT_INDEX = 127 >> 1
DEFAULT_MAX_MULTIPART_MEMORY = 32 << 20
BODY_BYTES_KEY = "_tonic/bodybyteskey"
CONTEXT_KEY = "_tonic/contextkey"

Handler = Callable[["Context"], None]


class ContextKeyType(enum.Enum):
    """Special keys understood by :meth:`Context.value`."""

    REQUEST = 0


CONTEXT_REQUEST_KEY = ContextKeyType.REQUEST


class MissingFileError(RequestError, LookupError):
    """No file was uploaded under the requested form key."""


@dataclass(frozen=True)
class Param:
    """A single URL parameter taken from the matched route."""

    key: str
    value: str


class Params(list):
    """The URL parameters of a request, in route order."""

    def get(self, name: str) -> Optional[str]:
        """Return the value of the first parameter called ``name``, or None."""
        for param in self:
            if param.key == name:
                return param.value
        return None

    def by_name(self, name: str) -> str:
        """Return the value of the parameter called ``name``, or an empty string."""
        found = self.get(name)
        return found if found is not None else ""


def _find_error(err: BaseException) -> Optional[Error]:
    seen: set[int] = set()
    current: Optional[BaseException] = err
    while current is not None and id(current) not in seen:
        if isinstance(current, Error):
            return current
        seen.add(id(current))
        current = current.__cause__
    return None


def _split_host_port(addr: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port``; raise ValueError when malformed."""
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {addr!r}")
        host = addr[1:end]
        rest = addr[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {addr!r}")
        port = rest[1:]
    else:
        host, sep, port = addr.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {addr!r}")
        if ":" in host:
            raise ValueError(f"too many colons in address {addr!r}")
        if "[" in host or "]" in host:
            raise ValueError(f"unexpected bracket in address {addr!r}")
    if "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address {addr!r}")
    return host, port


class Context:
    """State shared by the handlers that serve one request."""

    def __init__(
        self,
        request: Optional[Request] = None,
        response: Optional[Response] = None,
        max_multipart_memory: int = DEFAULT_MAX_MULTIPART_MEMORY,
    ) -> None:
        self.request = request
        self.response = response if response is not None else Response()
        self.max_multipart_memory = max_multipart_memory
        self.params = Params()
        self.handlers: list[Optional[Handler]] = []
        self.index = -1
        self.matched_route = ""
        self.keys = KeyStore()
        self.errors = ErrorList()
        self.accepted: Optional[list[str]] = None
        self._query_cache: Optional[dict[str, list[str]]] = None
        self._form_cache: Optional[dict[str, list[str]]] = None
        self._same_site = SameSite.NOT_SET

    # creation

    def reset(self) -> None:
        """Clear all per-request state so the context can be reused."""
        self.params = Params()
        self.handlers = []
        self.index = -1
        self.matched_route = ""
        self.keys = KeyStore()
        self.errors = ErrorList()
        self.accepted = None
        self._query_cache = None
        self._form_cache = None
        self._same_site = SameSite.NOT_SET

    def copy(self) -> Context:
        """Return a detached copy that is safe to use outside the request."""
        detached = Response()
        detached.status = self.response.status
        detached.headers = self.response.headers.copy()
        cp = Context(self.request, detached, self.max_multipart_memory)
        cp.index = ABORT_INDEX
        cp.handlers = []
        cp.matched_route = self.matched_route
        cp.keys = self.keys.copy()
        cp.params = Params(self.params)
        return cp

    def handler_name(self) -> str:
        """Return the dotted name of the main (last) handler."""
        return name_of_function(self.handler())

    def handler_names(self) -> list[str]:
        """Return the names of all handlers in the chain, skipping empty slots."""
        return [name_of_function(h) for h in self.handlers if h is not None]

    def handler(self) -> Optional[Handler]:
        """Return the main (last) handler, or None when the chain is empty."""
        return self.handlers[-1] if self.handlers else None

    def full_path(self) -> str:
        """Return the matched route pattern, or an empty string."""
        return self.matched_route

    # flow control

    def next(self) -> None:
        """Run the pending handlers of the chain inside the calling handler."""
        self.index += 1
        while self.index < len(self.handlers):
            handler = self.handlers[self.index]
            if handler is not None:
                handler(self)
            self.index += 1

    def is_aborted(self) -> bool:
        """Return True once the chain has been aborted."""
        return self.index >= ABORT_INDEX

    def abort(self) -> None:
        """Prevent the pending handlers from running."""
        self.index = ABORT_INDEX

    def abort_with_status(self, code: int) -> None:
        """Abort and send the response headers with ``code``."""
        self.status(code)
        self.response.write_header_now()
        self.abort()

    def abort_with_error(self, code: int, err: BaseException) -> Error:
        """Abort with ``code`` and record ``err``."""
        self.abort_with_status(code)
        return self.error(err)

    # errors

    def error(self, err: Optional[BaseException]) -> Error:
        """Record an error on the context and return it as an :class:`Error`."""
        if err is None:
            raise ValueError("err is nil")
        parsed = _find_error(err)
        if parsed is None:
            parsed = Error(err, ErrorType.PRIVATE)
        self.errors.append(parsed)
        return parsed

    # URL parameters and query string

    def param(self, key: str) -> str:
        """Return the URL parameter ``key``, or an empty string."""
        return self.params.by_name(key)

    def add_param(self, key: str, value: str) -> None:
        """Append a URL parameter."""
        self.params.append(Param(key, value))

    def _queries(self) -> dict[str, list[str]]:
        if self._query_cache is None:
            self._query_cache = self.request.query() if self.request is not None else {}
        return self._query_cache

    def query(self, key: str) -> str:
        """Return the first query value for ``key``, or an empty string."""
        found = self.get_query(key)
        return found if found is not None else ""

    def default_query(self, key: str, default_value: str) -> str:
        """Return the first query value for ``key``, or ``default_value``."""
        found = self.get_query(key)
        return found if found is not None else default_value

    def get_query(self, key: str) -> Optional[str]:
        """Return the first query value for ``key``, or None when absent."""
        values = self.get_query_array(key)
        return values[0] if values else None

    def query_array(self, key: str) -> list[str]:
        """Return all query values for ``key``."""
        values = self.get_query_array(key)
        return values if values is not None else []

    def get_query_array(self, key: str) -> Optional[list[str]]:
        """Return all query values for ``key``, or None when absent."""
        return self._queries().get(key)

    def query_map(self, key: str) -> dict[str, str]:
        """Return the ``key[name]`` query entries as a mapping."""
        found = self.get_query_map(key)
        return found if found is not None else {}

    def get_query_map(self, key: str) -> Optional[dict[str, str]]:
        """Return the ``key[name]`` query entries, or None when there are none."""
        result, found = negotiation.bracket_map(self._queries(), key)
        return result if found else None

    # form body

    def _forms(self) -> dict[str, list[str]]:
        if self._form_cache is None:
            self._form_cache = {}
            if self.request is not None:
                try:
                    self._form_cache = self.request.post_form()
                except RequestError as exc:
                    if not isinstance(exc, NotMultipartError):
                        debug_print("error on parse multipart form array: %s", exc)
        return self._form_cache

    def post_form(self, key: str) -> str:
        """Return the first form value for ``key``, or an empty string."""
        found = self.get_post_form(key)
        return found if found is not None else ""

    def default_post_form(self, key: str, default_value: str) -> str:
        """Return the first form value for ``key``, or ``default_value``."""
        found = self.get_post_form(key)
        return found if found is not None else default_value

    def get_post_form(self, key: str) -> Optional[str]:
        """Return the first form value for ``key``, or None when absent."""
        values = self.get_post_form_array(key)
        return values[0] if values else None

    def post_form_array(self, key: str) -> list[str]:
        """Return all form values for ``key``."""
        values = self.get_post_form_array(key)
        return values if values is not None else []

    def get_post_form_array(self, key: str) -> Optional[list[str]]:
        """Return all form values for ``key``, or None when absent."""
        return self._forms().get(key)

    def post_form_map(self, key: str) -> dict[str, str]:
        """Return the ``key[name]`` form entries as a mapping."""
        found = self.get_post_form_map(key)
        return found if found is not None else {}

    def get_post_form_map(self, key: str) -> Optional[dict[str, str]]:
        """Return the ``key[name]`` form entries, or None when there are none."""
        result, found = negotiation.bracket_map(self._forms(), key)
        return result if found else None

    def form_file(self, name: str) -> UploadedFile:
        """Return the first file uploaded under ``name``.

        Raises a RequestError when the body is not a valid multipart form or
        holds no such file.
        """
        if self.request is None:
            raise RequestError("no request")
        uploads = self.request.files().get(name)
        if not uploads:
            raise MissingFileError("http: no such file")
        return uploads[0]

    def save_uploaded_file(
        self, file: UploadedFile, dst: Union[str, os.PathLike], mode: int = 0o750
    ) -> None:
        """Write an uploaded file to ``dst``, creating its directory with ``mode``."""
        file.save(dst, mode)

    # request metadata

    def _request_header(self, key: str) -> str:
        return self.request.headers.get(key) if self.request is not None else ""

    def remote_ip(self) -> str:
        """Return the IP part of the request's remote address, or an empty string."""
        if self.request is None:
            return ""
        try:
            host, _ = _split_host_port(self.request.remote_addr.strip())
        except ValueError:
            return ""
        return host

    def content_type(self) -> str:
        """Return the request's media type without parameters."""
        return negotiation.filter_flags(self._request_header("Content-Type"))

    def is_websocket(self) -> bool:
        """Return True when the request asks for a websocket upgrade."""
        return (
            "upgrade" in self._request_header("Connection").lower()
            and self._request_header("Upgrade").lower() == "websocket"
        )

    # response

    def status(self, code: int) -> None:
        """Set the response status code."""
        self.response.write_header(code)

    def header(self, key: str, value: str) -> None:
        """Set a response header; an empty value removes it."""
        if value == "":
            self.response.headers.delete(key)
        else:
            self.response.headers.set(key, value)

    def get_header(self, key: str) -> str:
        """Return a request header value, or an empty string."""
        return self._request_header(key)

    def get_raw_data(self) -> bytes:
        """Read the rest of the request body."""
        if self.request is None:
            raise RequestError("cannot read nil body")
        return self.request.read_body()

    def set_same_site(self, same_site: SameSite) -> None:
        """Set the SameSite attribute used by :meth:`set_cookie`."""
        self._same_site = same_site

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: int = 0,
        path: str = "/",
        domain: str = "",
        secure: bool = False,
        http_only: bool = False,
    ) -> None:
        """Add a Set-Cookie header with a URL-escaped value."""
        self.response.set_cookie(
            name,
            quote_plus(value, safe=""),
            max_age=max_age,
            path=path or "/",
            domain=domain,
            same_site=self._same_site,
            secure=secure,
            http_only=http_only,
        )

    def cookie(self, name: str) -> str:
        """Return the unescaped value of a request cookie.

        Raises NoCookieError when the cookie is absent.
        """
        if self.request is None:
            raise RequestError("no request")
        return unquote_plus(self.request.cookie(name))

    def data(self, code: int, content_type: str, data: bytes) -> None:
        """Write ``data`` as the body with ``code`` and ``content_type``."""
        self.status(code)
        if not self.response.headers.get_all("Content-Type"):
            self.response.headers.set("Content-Type", content_type)
        if not negotiation.body_allowed_for_status(code):
            self.response.write_header_now()
            return
        self.response.write(data)

    def attachment_header(self, filename: str) -> None:
        """Set a Content-Disposition header offering the body as ``filename``."""
        self.response.headers.set(
            "Content-Disposition", negotiation.content_disposition(filename)
        )

    # content negotiation

    def negotiate_format(self, *args: str) -> str:
        """Return the first offered format the client accepts, or an empty string."""
        if self.accepted is None:
            self.accepted = negotiation.parse_accept(self._request_header("Accept"))
        return negotiation.negotiate_format(self.accepted, args)

    def set_accepted(self, *args: str) -> None:
        """Override the formats the client is taken to accept."""
        self.accepted = list(args)

    def value(self, key: Any) -> Any:
        """Return the request, the context, or a stored key's value; else None."""
        if key is CONTEXT_REQUEST_KEY:
            return self.request
        if isinstance(key, str):
            if key == CONTEXT_KEY:
                return self
            if key in self.keys:
                return self.keys.get(key)
        return None