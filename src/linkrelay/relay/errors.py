"""Exception hierarchy for the relay core."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error raised by the relay core."""


class ConfigurationError(RelayError):
    """A binding or role needed for a relay is missing.

    Per-target and non-fatal: recorded in the relay report, never aborts
    sibling targets.
    """


class ResourceUnavailableError(RelayError):
    """A destination channel or server cannot be resolved. Never retried."""


class DeliveryError(RelayError):
    """Delivery to one destination failed after the retry policy ran out.

    Attributes:
        reason: Human-readable failure reason.
        retriable: Whether the underlying failure was transient.
        operation: Name of the network operation that failed.
    """

    def __init__(self, reason: str, *, retriable: bool, operation: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.retriable = retriable
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.reason}"
        return self.reason


class TransientDeliveryError(DeliveryError):
    """Network or rate-limit failure worth retrying."""

    def __init__(self, reason: str, *, operation: str | None = None) -> None:
        super().__init__(reason, retriable=True, operation=operation)


class FatalStartupError(RelayError):
    """The initial load of bindings or roles failed after retries."""
