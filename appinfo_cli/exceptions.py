"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class AppInfoCliError(Exception):
    """Base exception for all application-specific errors."""


class FetchError(AppInfoCliError):
    """Base class for failures fetching the details of a single key."""

    def __init__(self, key: str, message: str):
        super().__init__(message)
        self.key = key


class TransportError(FetchError):
    """Raised on connection, DNS or TLS failures talking to the store API."""


class HTTPStatusError(TransportError):
    """Raised when the store API answers with a non-success HTTP status."""

    def __init__(self, key: str, status: int):
        super().__init__(key, f"Store API returned status {status} for key {key}")
        self.status = status


class FetchTimeoutError(FetchError):
    """Raised when the transport or the outer call timeout elapses."""


class ParseError(FetchError):
    """Raised when the response is not valid JSON or has an unexpected shape."""


class NotFoundOrUnsuccessfulError(FetchError):
    """
    Raised when the response is well formed but the key is absent, marked
    unsuccessful, or carries no data.
    """


class CacheIOError(AppInfoCliError):
    """Raised when a cache entry cannot be read, parsed or written."""


class ConfigurationError(AppInfoCliError):
    """Raised for issues related to configuration loading or validation."""


class CatalogError(AppInfoCliError):
    """Raised when the application catalog cannot be loaded."""
