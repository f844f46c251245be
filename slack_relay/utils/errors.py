"""Error handling utilities."""

from typing import Optional


class RelayError(Exception):
    """Base exception for the Slack relay."""
    pass


class MalformedRequestError(RelayError):
    """Inbound body is not a parseable Slack payload."""
    pass


class ConfigurationError(RelayError):
    """Required or malformed configuration value."""
    pass


class CacheError(RelayError):
    """Dedup cache backend operation failed."""
    pass


class ForwardingError(RelayError):
    """Downstream workflow call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
