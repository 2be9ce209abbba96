"""Directory authentication client for Active Directory.

Stable import surface for callers:
    from adauth import connect, bind, change_password, ...
"""

from .ad import (
    AuthRejectReason,
    BindOutcome,
    BindStatus,
    ConfigurationError,
    ConnectionClosedError,
    CredentialsRejectedError,
    DirectoryConfig,
    DirectoryConnection,
    DirectoryConnectionError,
    DirectoryError,
    DirectoryTransportError,
    DNNotFoundError,
    PasswordEncodingError,
    PasswordModifyError,
    SecurityMode,
    bind,
    change_password,
    connect,
    encode_password,
    reset_password,
    reset_user_password,
    resolve_dn,
    verify_credentials,
)
from .messages import describe_reason

__version__ = "0.1.0"

__all__ = [
    "AuthRejectReason",
    "BindOutcome",
    "BindStatus",
    "ConfigurationError",
    "ConnectionClosedError",
    "CredentialsRejectedError",
    "DirectoryConfig",
    "DirectoryConnection",
    "DirectoryConnectionError",
    "DirectoryError",
    "DirectoryTransportError",
    "DNNotFoundError",
    "PasswordEncodingError",
    "PasswordModifyError",
    "SecurityMode",
    "bind",
    "change_password",
    "connect",
    "encode_password",
    "reset_password",
    "reset_user_password",
    "resolve_dn",
    "verify_credentials",
    "describe_reason",
]
