"""Error types raised by Beacon clients.

Fetch failures are raised by the HTTP clients and caught by the sync
orchestrator, which decides whether to keep stale data or clear it.
Malformed individual fields are never errors: the tolerant decoder turns
them into zeros.
"""


class BeaconError(Exception):
    """Base class for all Beacon errors."""


class Unauthenticated(BeaconError):
    """No credentials are set."""


class BadResponse(BeaconError):
    """Broker returned a non-200 status or a body of the wrong shape."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (HTTP {self.status_code})"
        return base


class BackendError(BeaconError):
    """Journal backend request failed."""


class AssistantError(BeaconError):
    """Generative AI request failed."""
