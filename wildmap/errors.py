# ABOUTME: Exception types for the map explorer.
# ABOUTME: Each error ends only the action that triggered it; handlers turn them into status text.


class ExplorerError(Exception):
    """Base class for errors surfaced to the explorer UI."""


class InputError(ExplorerError):
    """Bad or missing user input. Reported inline, nothing is mutated."""


class TransportError(ExplorerError):
    """A remote endpoint answered with a non-success status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, reason: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class PermissionDenied(ExplorerError):
    """Device geolocation was refused or is unavailable."""
