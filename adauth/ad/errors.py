from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AuthRejectReason


class DirectoryError(Exception):
    """Base class for everything raised by adauth."""


class ConfigurationError(DirectoryError):
    """Invalid configuration (caller bug), e.g. an unknown security mode."""


class DirectoryConnectionError(DirectoryError):
    """Dial or TLS negotiation failed."""


class DirectoryTransportError(DirectoryError):
    """The directory round-trip itself failed (reset, timeout, protocol error)."""


class ConnectionClosedError(DirectoryError):
    """Operation attempted on a connection that was already closed."""


class PasswordEncodingError(DirectoryError, ValueError):
    """Password cannot be represented in the directory's wire encoding."""


class DNNotFoundError(DirectoryError):
    def __init__(self, attribute: str, value: str, matches: int) -> None:
        self.attribute = attribute
        self.value = value
        self.matches = matches
        if matches:
            msg = f"Ambiguous lookup: {matches} entries match {attribute}={value}"
        else:
            msg = f"No entry matches {attribute}={value}"
        super().__init__(msg)


class CredentialsRejectedError(DirectoryError):
    """The directory refused the supplied credentials."""

    def __init__(self, reason: "AuthRejectReason", message: str = "") -> None:
        self.reason = reason
        self.message = message
        super().__init__(f"Credentials not valid ({reason.value}): {message}" if message else f"Credentials not valid ({reason.value})")


class PasswordModifyError(DirectoryError):
    """The directory refused the password write."""

    def __init__(self, reason: "AuthRejectReason", message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(message)
