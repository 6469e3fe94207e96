"""
Custom exceptions for the CashCode driver.

Provides a hierarchy of typed exceptions so callers can tell fatal
startup failures from transient device I/O problems.
"""

from typing import Any, Optional


class CashCodeError(Exception):
    """Base exception for all driver errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            code: Optional error code for programmatic handling.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging or API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Device Errors
# =============================================================================


class DeviceError(CashCodeError):
    """Base exception for device-related errors."""

    def __init__(
        self,
        message: str,
        port: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.port = port
        if port:
            self.details["port"] = port


class TransportError(DeviceError):
    """Serial link failure (open, write, read)."""

    pass


class DeviceConnectionError(TransportError):
    """Serial port could not be opened."""

    pass


class DeviceIoError(TransportError):
    """Write, read or drain on an open port failed."""

    pass


class DriverStateError(DeviceError):
    """Driver lifecycle method called in the wrong state."""

    pass


# =============================================================================
# Repository Errors
# =============================================================================


class RepositoryError(CashCodeError):
    """Base exception for persistence errors."""

    pass


class LedgerError(RepositoryError):
    """Accepted-bills ledger could not be opened, updated or queried."""

    pass


# =============================================================================
# Event Errors
# =============================================================================


class EventChannelClosed(CashCodeError):
    """The event consumer closed its channel."""

    pass
