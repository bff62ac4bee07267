"""
Error kinds surfaced by the HTTP handlers.

Every kind carries the HTTP status it maps to. The server renders any of
them as ``{"error": message}``.
"""


class CatalogError(Exception):
    """Base class for errors that become a JSON error response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(CatalogError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidRequest(CatalogError):
    status_code = 400


class ConfigurationError(CatalogError):
    status_code = 500


class UpstreamError(CatalogError):
    """An external fetch (Raindrop API or product page) returned a non-success status."""

    status_code = 500


class InternalError(CatalogError):
    status_code = 500
