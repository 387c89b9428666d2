"""Errors surfaced by the quote and order workflow.

Every one of them is local and recoverable: the web layer shows the
message and the user retries.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for workflow errors shown to staff."""


class ReferenceDataUnavailableError(ShopError):
    """Raised when statuses have not loaded, so a submission must wait."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Status reference data is still loading. Please try again in a moment.")


class BackendError(ShopError):
    """A database call failed; the message is passed through verbatim."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class NotFoundError(ShopError):
    """The requested quote or order does not exist."""


class InvalidStatusError(ShopError):
    """A status id that is not in the reference list was submitted."""


class UnknownPrintTypeError(ShopError):
    """The selected print type is not in the reference list."""
