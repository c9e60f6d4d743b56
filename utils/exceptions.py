"""Custom exception hierarchy for manhwa-hub.

Provides specific exception types for different failure scenarios,
making error handling more precise and testable.
"""


class ManhwaHubError(Exception):
    """Base exception for all manhwa-hub errors."""

    pass


class LoadError(ManhwaHubError):
    """Raised when a plugin source is malformed or exports nothing constructible."""

    def __init__(self, path, reason: str = ""):
        self.path = str(path)
        self.reason = reason
        message = f"Failed to load plugin {self.path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotFoundError(ManhwaHubError):
    """Raised when a registry key has no loaded plugin."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Plugin not found: {key}")


class NetworkError(ManhwaHubError):
    """Raised on transport or timeout failure against an external site."""

    pass


class ParseError(ManhwaHubError):
    """Raised when a page is missing a mandatory field or structure."""

    pass


class OperationError(ManhwaHubError):
    """Raised by the dispatcher when an extractor operation fails.

    Carries only a generic message, safe to show to API callers.
    """

    pass



class ConfigError(ManhwaHubError):
    """Raised when configuration is invalid or missing."""

    pass
