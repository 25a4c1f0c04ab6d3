# blackgate

Building blocks for an API gateway:

- **`blackgate.spec`** parses and validates OpenAPI 3.x documents given as JSON.
- **`blackgate.openapi`** turns a parsed document into gateway routes, server
  lists and metadata, including the authentication type the API expects. It can
  also fetch documents over HTTP.
- **`blackgate.rate_limiter`** enforces sliding-window limits per minute and per
  hour for each key.
- **`blackgate.shutdown`** coordinates a graceful shutdown across asyncio
  background tasks.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Parsing OpenAPI documents

`parse_openapi_spec(text)` decodes a JSON string; `parse_openapi_value(data)`
takes data that is already decoded. Both return an `OpenApiSpec` with the
fields `openapi`, `info` (an `OpenApiInfo` with `title`, `version` and
`description`), `paths`, `servers`, `components` and `security`. Nested
objects are kept as plain dictionaries and lists. `spec.security_schemes`
gives the schemes declared under `components.securitySchemes`.

Errors:

- `OpenApiParseError`: the text is not valid JSON, or a required field
  (`openapi`, `info.title`, `info.version`, `paths`, each server's `url`) is
  missing or of the wrong type.
- `OpenApiValidationError`: the OpenAPI version does not start with `3.`, or
  the title or version is empty. `validate_openapi_spec(spec)` runs these
  checks on its own.
- `OpenApiFetchError`: a document could not be downloaded.

All three derive from `OpenApiError`; `str(error)` reads like
`OpenAPI Parse Error: Invalid JSON: ...`, and `error.message` holds the part
after the colon.

## Importing routes from an OpenAPI document

```python
from blackgate.spec import parse_openapi_spec
from blackgate.openapi import (
    extract_metadata,
    extract_routes_from_spec,
    extract_servers_from_spec,
)

document = """
{
  "openapi": "3.0.0",
  "info": {"title": "Users API", "version": "1.0.0"},
  "paths": {
    "/users": {"get": {"responses": {"200": {"description": "OK"}}},
               "post": {"responses": {"201": {"description": "Created"}}}}
  }
}
"""

spec = parse_openapi_spec(document)
metadata = extract_metadata(spec)            # title, description, auth_type
routes = extract_routes_from_spec(spec, "https://api.example.com", 30, 500)

for route in routes:
    print(route.path, route.upstream, route.allowed_methods)
# /users https://api.example.com/users GET,POST

servers = extract_servers_from_spec(spec)   # list of OpenApiServer(url, description)
```

Each path becomes one `OpenApiRoute` whose allowed methods are listed in the
order GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS, TRACE. The upstream is the
base URL, without trailing slashes, followed by the path; path parameters stay
in `{name}` form (see `convert_openapi_path_to_route_path`). Every route gets
the auth type `none` and the given rate limits. Paths that are `$ref`
references or have no operations are skipped with a warning; a document with no
usable paths raises `OpenApiValidationError`.

`determine_auth_type(spec)` (also used by `extract_metadata`) returns one of
`none`, `basic-auth`, `api-key`, `oauth2`, `jwt` (HTTP bearer) or `oidc`. It
looks first at the schemes named in the global `security` requirements, then at
the first declared scheme; HTTP schemes other than basic and bearer, and
`$ref` schemes, count as `none`.

To work straight from a URL:

```python
import asyncio
from blackgate.openapi import fetch_and_extract_metadata

metadata = asyncio.run(fetch_and_extract_metadata("https://api.example.com/openapi.json"))
```

`fetch_and_parse_spec` and `fetch_and_extract_servers` work the same way. A
connection failure or a non-success HTTP status raises `OpenApiFetchError`.

## Rate limiting

```python
from blackgate.rate_limiter import RateLimiter

limiter = RateLimiter()
limiter.is_allowed("path:/users", 2, 100)   # True
limiter.is_allowed("path:/users", 2, 100)   # True
limiter.is_allowed("path:/users", 2, 100)   # False: two requests already in the last minute
```

A request is recorded only when it is allowed. Timestamps older than an hour
are dropped on every check, and a limit of 0 rejects every request.
`RateLimiter(clock=...)` accepts any function returning seconds; the default is
`time.monotonic`.

`check_rate_limit(path, per_minute, per_hour, limiter, metrics)` checks the key
`path:<path>`. `metrics` is any object with an `id` attribute and a
`set_error(message)` method. When a limit is hit it calls
`metrics.set_error("Rate limit exceeded")` and raises `RateLimitExceeded`, whose
`status_code` is 429, `headers` is `{"Retry-After": "60"}` and `body` is
`"Too Many Requests"`.

## Graceful shutdown

```python
import asyncio
from blackgate.shutdown import ShutdownCoordinator, ShutdownAwareTask

async def cleanup_loop(coordinator):
    task = ShutdownAwareTask(coordinator)
    while not await task.wait_or_shutdown(60):
        ...  # periodic work

async def main():
    coordinator = ShutdownCoordinator()
    worker = asyncio.create_task(cleanup_loop(coordinator))
    await coordinator.wait_for_shutdown_signal()   # Ctrl+C or SIGTERM
    await worker
    await coordinator.wait_for_tasks_completion(10)

asyncio.run(main())
```

`initiate_shutdown` can also be called directly; it signals every subscriber
once, however often it is called, and `is_shutdown_initiated` reports whether
it has happened. `subscribe()` returns a `ShutdownReceiver` with `recv()` and
`try_recv()`; only signals sent after subscribing are seen.
`ShutdownAwareTask.should_shutdown()` checks without waiting, and
`wait_or_shutdown` accepts seconds or a `timedelta`.
`wait_for_tasks_completion(timeout)` waits a fixed two-second grace period (or
the timeout, if shorter) and returns whether the grace period finished first;
it does not track the tasks themselves.

## What this package does not do

It provides no gateway server, request proxying, command-line tool or route
storage. Routes produced by `extract_routes_from_spec` are plain data for the
caller to store and serve, and the rate limiter keeps its counts in memory
only.