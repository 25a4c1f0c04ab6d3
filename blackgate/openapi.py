"""Turning parsed OpenAPI specifications into gateway metadata, routes and servers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from blackgate.spec import (
    OpenApiFetchError,
    OpenApiSpec,
    OpenApiValidationError,
    parse_openapi_spec,
)

logger = logging.getLogger(__name__)

# Route auth must stay "none" so that the owning collection's auth applies.
_ROUTE_AUTH_TYPE = "none"

_HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options", "trace")

_PATH_PARAM = re.compile(r"\{([^{}/]+)\}")


@dataclass
class OpenApiMetadata:
    """Title, description and authentication type of an API."""

    title: str
    description: str | None
    auth_type: str


@dataclass
class OpenApiRoute:
    """A gateway route derived from one OpenAPI path."""

    path: str = ""
    upstream: str = ""
    allowed_methods: str = ""
    auth_type: str = "none"
    rate_limit_per_minute: int = 0
    rate_limit_per_hour: int = 0


@dataclass
class OpenApiServer:
    """A server entry from the specification."""

    url: str
    description: str | None = None


def _is_reference(obj: Any) -> bool:
    return isinstance(obj, dict) and "$ref" in obj


def _map_security_scheme(scheme: Any) -> str | None:
    """Map a security scheme object to the gateway's authentication type name."""
    if _is_reference(scheme):
        return "none"
    if not isinstance(scheme, dict):
        return None
    kind = scheme.get("type")
    if kind == "apiKey":
        return "api-key"
    if kind == "http":
        http_scheme = str(scheme.get("scheme", "")).lower()
        if http_scheme == "basic":
            return "basic-auth"
        if http_scheme == "bearer":
            return "jwt"
        return "none"
    if kind == "oauth2":
        return "oauth2"
    if kind == "openIdConnect":
        return "oidc"
    return None


def determine_auth_type(spec: OpenApiSpec) -> str:
    """Pick the primary authentication type, preferring global security requirements."""
    schemes = spec.security_schemes
    if not schemes:
        return "none"

    for requirement in spec.security or []:
        for scheme_name in requirement:
            if scheme_name in schemes:
                auth_type = _map_security_scheme(schemes[scheme_name])
                if auth_type is not None:
                    return auth_type

    for scheme in schemes.values():
        auth_type = _map_security_scheme(scheme)
        if auth_type is not None:
            return auth_type

    return "none"


def extract_metadata(spec: OpenApiSpec) -> OpenApiMetadata:
    """Extract title, description and authentication type from a spec."""
    return OpenApiMetadata(
        title=spec.info.title,
        description=spec.info.description,
        auth_type=determine_auth_type(spec),
    )


def _format_route_param(match: re.Match[str]) -> str:
    # The gateway matches parameters in the same {name} form OpenAPI uses.
    return "{" + match.group(1) + "}"


def convert_openapi_path_to_route_path(openapi_path: str) -> str:
    """Convert an OpenAPI path to the gateway's route format, rewriting each ``{param}``."""
    return _PATH_PARAM.sub(_format_route_param, openapi_path)


def extract_routes_from_spec(
    spec: OpenApiSpec,
    base_upstream_url: str,
    default_rate_limit_per_minute: int,
    default_rate_limit_per_hour: int,
) -> list[OpenApiRoute]:
    """Build one route per path, listing every method the path defines."""
    routes: list[OpenApiRoute] = []
    base = base_upstream_url.rstrip("/")

    for path, item in spec.paths.items():
        if _is_reference(item):
            logger.warning(
                "Skipping path '%s' because it's a reference (not yet supported)", path
            )
            continue

        methods = [m.upper() for m in _HTTP_METHODS if item.get(m) is not None]
        if not methods:
            logger.warning("Skipping path '%s' because it has no operations defined", path)
            continue

        routes.append(
            OpenApiRoute(
                path=convert_openapi_path_to_route_path(path),
                upstream=f"{base}{path}",
                allowed_methods=",".join(methods),
                auth_type=_ROUTE_AUTH_TYPE,
                rate_limit_per_minute=default_rate_limit_per_minute,
                rate_limit_per_hour=default_rate_limit_per_hour,
            )
        )

    if not routes:
        raise OpenApiValidationError("No valid paths found in OpenAPI specification")

    logger.info("Extracted %d routes from OpenAPI specification", len(routes))
    return routes


def extract_servers_from_spec(spec: OpenApiSpec) -> list[OpenApiServer]:
    """List the servers declared in a spec, in document order."""
    return [
        OpenApiServer(url=server["url"], description=server.get("description"))
        for server in spec.servers
    ]


async def _fetch_text(url: str) -> str:
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise OpenApiFetchError(f"Failed to fetch from URL: {exc}") from exc

    if not response.is_success:
        status = f"{response.status_code} {response.reason_phrase}".strip()
        raise OpenApiFetchError(f"HTTP {status} when fetching OpenAPI spec from {url}")

    try:
        return response.text
    except (UnicodeDecodeError, LookupError) as exc:
        raise OpenApiFetchError(f"Failed to read response body: {exc}") from exc


async def fetch_and_parse_spec(url: str) -> OpenApiSpec:
    """Download a specification and parse it."""
    return parse_openapi_spec(await _fetch_text(url))


async def fetch_and_extract_metadata(url: str) -> OpenApiMetadata:
    """Download a specification and extract its metadata."""
    return extract_metadata(await fetch_and_parse_spec(url))


async def fetch_and_extract_servers(url: str) -> list[OpenApiServer]:
    """Download a specification and list its servers."""
    return extract_servers_from_spec(await fetch_and_parse_spec(url))