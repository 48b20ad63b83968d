"""HTTP and WebSocket API."""

from cath_guard.api.app import DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT, ApiServer, error_middleware

__all__ = [
    "DEFAULT_HTTP_HOST",
    "DEFAULT_HTTP_PORT",
    "ApiServer",
    "error_middleware",
]
