"""Parsing and validation of OpenAPI 3.x specification documents."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


class OpenApiError(Exception):
    """Base error for everything that goes wrong with an OpenAPI document."""

    label = "OpenAPI Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class OpenApiParseError(OpenApiError):
    """The document is not valid JSON or does not have the shape of an OpenAPI spec."""

    label = "OpenAPI Parse Error"


class OpenApiValidationError(OpenApiError):
    """The document parsed but fails the gateway's requirements."""

    label = "OpenAPI Validation Error"


class OpenApiFetchError(OpenApiError):
    """The document could not be retrieved."""

    label = "OpenAPI Fetch Error"


@dataclass
class OpenApiInfo:
    """The ``info`` object of a specification."""

    title: str
    version: str
    description: str | None = None


@dataclass
class OpenApiSpec:
    """A parsed OpenAPI document; nested objects are kept as plain JSON data."""

    openapi: str
    info: OpenApiInfo
    paths: dict[str, dict[str, Any]] = field(default_factory=dict)
    servers: list[dict[str, Any]] = field(default_factory=list)
    components: dict[str, Any] | None = None
    security: list[dict[str, Any]] | None = None

    @property
    def security_schemes(self) -> dict[str, Any]:
        """Security schemes declared under ``components``, in document order."""
        if self.components is None:
            return {}
        return self.components.get("securitySchemes") or {}


class _ShapeError(Exception):
    pass


def _require(obj: dict[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in obj:
        raise _ShapeError(f"missing field `{key}` in {where}")
    value = obj[key]
    if not isinstance(value, kind):
        raise _ShapeError(f"invalid type for `{key}` in {where}, expected {kind.__name__}")
    return value


def _optional(obj: dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = obj.get(key)
    if value is not None and not isinstance(value, kind):
        raise _ShapeError(f"invalid type for `{key}` in {where}, expected {kind.__name__}")
    return value


def _build_spec(value: Any) -> OpenApiSpec:
    if not isinstance(value, dict):
        raise _ShapeError("expected a JSON object at the top level")

    openapi = _require(value, "openapi", str, "document")
    info_obj = _require(value, "info", dict, "document")
    info = OpenApiInfo(
        title=_require(info_obj, "title", str, "info"),
        version=_require(info_obj, "version", str, "info"),
        description=_optional(info_obj, "description", str, "info"),
    )

    paths = _require(value, "paths", dict, "document")
    for path, item in paths.items():
        if not isinstance(item, dict):
            raise _ShapeError(f"path item for `{path}` must be an object")

    servers = _optional(value, "servers", list, "document") or []
    for server in servers:
        if not isinstance(server, dict):
            raise _ShapeError("each server must be an object")
        _require(server, "url", str, "server")
        _optional(server, "description", str, "server")

    components = _optional(value, "components", dict, "document")
    if components is not None:
        _optional(components, "securitySchemes", dict, "components")

    security = _optional(value, "security", list, "document")
    if security is not None and not all(isinstance(req, dict) for req in security):
        raise _ShapeError("each security requirement must be an object")

    return OpenApiSpec(
        openapi=openapi,
        info=info,
        paths=paths,
        servers=list(servers),
        components=components,
        security=security,
    )


def validate_openapi_spec(spec: OpenApiSpec) -> None:
    """Check version, title and version fields; raise OpenApiValidationError on failure."""
    if not spec.openapi.startswith("3."):
        raise OpenApiValidationError(
            f"Unsupported OpenAPI version: {spec.openapi}. Only version 3.x is supported."
        )
    if not spec.info.title:
        raise OpenApiValidationError("OpenAPI specification must have a non-empty title")
    if not spec.info.version:
        raise OpenApiValidationError("OpenAPI specification must have a non-empty version")


def parse_openapi_value(value: Any) -> OpenApiSpec:
    """Build and validate a spec from already decoded JSON data."""
    try:
        spec = _build_spec(value)
    except _ShapeError as exc:
        raise OpenApiParseError(f"Invalid OpenAPI specification: {exc}") from None
    validate_openapi_spec(spec)
    return spec


def parse_openapi_spec(spec_json: str) -> OpenApiSpec:
    """Parse and validate an OpenAPI specification from a JSON string."""
    try:
        value = json.loads(spec_json)
    except json.JSONDecodeError as exc:
        raise OpenApiParseError(f"Invalid JSON: {exc}") from None
    return parse_openapi_value(value)