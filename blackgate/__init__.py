"""API gateway building blocks: OpenAPI parsing and route import, rate limiting and shutdown coordination."""

__version__ = "0.1.0"

__all__ = ["openapi", "rate_limiter", "shutdown", "spec"]