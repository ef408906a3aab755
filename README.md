# tonic

Per-request context handling for small HTTP web applications. The package
has no dependencies outside the standard library.

It covers:

- **`tonic.context`**: `Context` carries a request through a chain of
  handlers. It provides flow control (`next`, `abort`, `abort_with_status`,
  `abort_with_error`), error recording (`error`) and key/value storage
  (`keys`, a `KeyStore`). It reads route params (`param`, `add_param`), query
  strings (`query`, `default_query`, `query_array`, `query_map`), POST forms
  (`post_form`, `default_post_form`, `post_form_array`, `post_form_map`) and
  uploaded files (`form_file`, `save_uploaded_file`). It reports the remote
  IP, content type and websocket upgrade requests, sets response headers,
  status and cookies, writes raw bodies (`data`) and negotiates formats
  (`negotiate_format`, `set_accepted`).
- **`tonic.request`**: the `Request`, `Response`, `Headers`, `UploadedFile`
  and `SameSite` types that a `Context` works with. `Request` parses query
  strings, URL-encoded and multipart form bodies and cookies; `Response`
  collects the status, headers and body in memory.
- **`tonic.errors`**: `Error`, `ErrorType` and `ErrorList` collect the errors
  raised during a request. They can filter errors by type and render them as
  JSON.
- **`tonic.negotiation`**: helpers for `Accept` header parsing and format
  negotiation (`parse_accept`, `negotiate_format`), `Content-Type` flag
  stripping (`filter_flags`), `key[name]` form keys (`bracket_map`), and
  `Content-Disposition` values (`content_disposition`, `escape_quotes`).
- **`tonic.store`**: `KeyStore`, a thread-safe key/value store with typed
  getters that return a zero value when the key is missing or holds another
  type.
- **`tonic.debug`**: debug-mode logging of routes, warnings and errors.

## Installing

```
pip install .
```

## A short example

```python
from tonic.context import Context
from tonic.request import Request, Response

request = Request("GET", "/search?q=tonic&page=2", headers={"Accept": "application/json"})
ctx = Context(request, Response())

ctx.query("q")                    # "tonic"
ctx.default_query("limit", "10")  # "10"
ctx.negotiate_format("application/json", "application/xml")  # "application/json"

ctx.set_cookie("session", "token", 3600, "/", "example.com", True, True)
ctx.data(200, "text/plain", b"ok")
ctx.response.status               # 200
ctx.response.text                 # "ok"
```

Errors attached during a request are kept on the context:

```python
ctx.error(ValueError("bad input"))
ctx.errors.errors()   # ["bad input"]
ctx.errors.to_json()  # {"error": "bad input"}
```

Values stored for the request are read back with typed getters:

```python
ctx.keys.set("user_id", 42)
ctx.keys.get_int("user_id")     # 42
ctx.keys.get_string("user_id")  # "" (not a string)
ctx.keys.must_get("missing")    # raises KeyError
```

## Debug output

Debug output is on unless the `TONIC_MODE` environment variable is set to
something other than `debug`.

```python
from tonic import debug

debug.set_debugging(True)
debug.debug_print("these are %d %s", 2, "messages")
# [TONIC-debug] these are 2 messages
```

`set_writer`, `set_error_writer`, `set_route_printer` and `set_print_func`
redirect or replace that output.

## What it does not do

The package has no router, no engine and no HTTP server: a `Context` is
built by hand from a `Request` and a `Response`, and its handler chain is
set on `ctx.handlers`. It does not render JSON, XML, YAML, TOML or HTML
responses, serve files, or bind request bodies to objects; `Context.data`
writes raw bytes and `Context.attachment_header` only sets the header.

## Running the tests

```
pip install .[test]
pytest
```