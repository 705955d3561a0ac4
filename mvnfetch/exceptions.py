"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class MvnFetchError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(MvnFetchError):
    """Raised for issues related to configuration loading or validation."""


class ManifestParseError(MvnFetchError):
    """Raised when a manifest or descriptor document cannot be parsed."""


class UnresolvedVersionError(MvnFetchError):
    """
    Describes a dependency whose version expression could not be resolved.
    The parser logs it and drops the dependency instead of raising it.
    """


class EmptyDescriptorError(MvnFetchError):
    """Raised when a downloaded descriptor is missing or zero-length."""


class FetchError(MvnFetchError):
    """Raised when a remote file could not be retrieved."""

    def __init__(self, message: str, url: str, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class NotFoundError(FetchError):
    """Raised when the repository answers 404 for a file."""


class HTTPStatusError(FetchError):
    """Raised for any terminal status other than 200 or 404."""


class RedirectError(FetchError):
    """
    Raised when a redirect cannot be followed: no Location header, or a
    second redirect after the single supported hop.
    """


class TransportError(FetchError):
    """Raised on connection failures, timeouts and local write errors."""
