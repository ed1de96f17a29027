"""Domain-level exceptions shared across layers."""


class ScannerError(Exception):
    """Base class for scanner errors."""
    pass


class GitHubAuthenticationError(ScannerError):
    """Raised when GitHub rejects the configured credentials.

    Unlike other upstream failures this one is never absorbed by the scan
    loop: every following request would fail the same way.
    """
    pass


class StateStorageError(ScannerError):
    """Raised when persisted scan state cannot be read or written."""
    pass
