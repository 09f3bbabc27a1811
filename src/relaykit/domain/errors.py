"""Domain error taxonomy.

Every error raised by the domain layer carries a :class:`ErrorKind`, a human
readable message and an optional wrapped cause. Callers branch on the type or
the kind, never on message contents.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    COLLABORATOR = "collaborator"
    TIMEOUT = "timeout"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class Collaborator(StrEnum):
    DATA_PROTECTOR = "data_protector"
    MESSAGING = "messaging"
    ACCOUNT = "account"


class RelayError(Exception):
    """Base class for structured relaykit errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, cause: BaseException | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ValidationError(RelayError, ValueError):
    """Raised for malformed user input such as an empty chat ID or e-mail."""

    kind = ErrorKind.VALIDATION


class CollaboratorError(RelayError):
    """Raised when a call to an external service fails."""

    kind = ErrorKind.COLLABORATOR

    def __init__(
        self,
        message: str,
        *,
        collaborator: Collaborator,
        cause: BaseException | str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.collaborator = collaborator
        self.code = code


class DispatchTimeoutError(RelayError):
    """Raised when a dispatch-wide deadline elapses before a target settled."""

    kind = ErrorKind.TIMEOUT


class InsufficientBalanceError(RelayError):
    """Raised when a withdrawal exceeds the available balance."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, *, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient balance. Available: {available} nano, requested: {requested} nano"
        )
        self.available = available
        self.requested = requested


def describe_error(exc: BaseException) -> str:
    """Render ``exc`` with its nested cause, if any."""

    message = str(exc) or type(exc).__name__
    cause: BaseException | str | None = None
    if isinstance(exc, RelayError):
        cause = exc.cause
    if cause is None:
        cause = exc.__cause__
    if cause is None:
        return message
    cause_text = cause if isinstance(cause, str) else (str(cause) or type(cause).__name__)
    if cause_text == message:
        return message
    return f"{message} (cause: {cause_text})"
