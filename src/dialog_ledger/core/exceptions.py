"""
Domain error kinds for conversation storage and registration.
"""

from typing import Any


class DialogLedgerError(Exception):
    """Base exception for conversation and session index errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_text = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} | {detail_text}"


class UnauthenticatedError(DialogLedgerError):
    """No trusted owner identity is available."""

    pass


class NotFoundError(DialogLedgerError):
    """Record is absent or not owned by the caller."""

    pass


class InvalidShapeError(DialogLedgerError):
    """Turn content is malformed (e.g. a partial video reference)."""

    pass


class ConflictError(DialogLedgerError):
    """A record with the same unique key already exists."""

    pass


class RegistrationError(DialogLedgerError):
    """Conversation summary could not be registered after the conflict retry."""

    pass


class SubmissionInProgressError(DialogLedgerError):
    """A submission was started while another one is still in flight."""

    pass


class DecryptionError(DialogLedgerError):
    """Stored content cannot be decrypted with the configured master key."""

    pass
