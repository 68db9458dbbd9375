"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class PexelsCliError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(PexelsCliError):
    """Raised for issues related to configuration loading or validation."""


class ProviderError(PexelsCliError):
    """Base class for failures reported by, or while reaching, the Pexels API."""


class ProviderUnavailableError(ProviderError):
    """Raised when the Pexels API cannot be reached (network or timeout)."""


class AuthenticationError(ProviderError):
    """Raised when the API key is missing or rejected."""


class RateLimitExceededError(ProviderError):
    """Raised when the hourly request quota has been used up."""


class VideoNotFoundError(ProviderError):
    """Raised when the requested video ID does not exist."""


class ProviderAPIError(ProviderError):
    """Raised for any other non-success HTTP status from the API."""


class NoSuitableRenditionError(PexelsCliError):
    """Raised when a video has no downloadable file to choose from."""


class TransferFailedError(PexelsCliError):
    """Raised when streaming a video file to disk fails."""


class InvalidSchemeError(PexelsCliError):
    """Raised for an unknown organization scheme or a custom scheme without rules."""


class LedgerError(PexelsCliError):
    """Base class for metadata ledger failures."""


class LedgerUnreadableError(LedgerError):
    """Raised when the metadata ledger exists but cannot be read or parsed."""


class LedgerUnwritableError(LedgerError):
    """Raised when the metadata ledger cannot be written back to disk."""


class RelocationFailedError(PexelsCliError):
    """Raised when a downloaded file cannot be moved into its category folder."""
