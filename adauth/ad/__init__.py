"""Active Directory (LDAP) authentication and password change.

Public API:
    - connect, DirectoryConnection
    - bind, verify_credentials
    - resolve_dn
    - reset_password, reset_user_password, change_password
    - encode_password
"""

from .models import AuthRejectReason, BindOutcome, BindStatus, DirectoryConfig, SecurityMode
from .errors import (
    ConfigurationError,
    ConnectionClosedError,
    CredentialsRejectedError,
    DirectoryConnectionError,
    DirectoryError,
    DirectoryTransportError,
    DNNotFoundError,
    PasswordEncodingError,
    PasswordModifyError,
)
from .utils import encode_password
from .client import (
    DirectoryConnection,
    bind,
    change_password,
    connect,
    reset_password,
    reset_user_password,
    resolve_dn,
    verify_credentials,
)

__all__ = [
    "AuthRejectReason",
    "BindOutcome",
    "BindStatus",
    "DirectoryConfig",
    "SecurityMode",
    "ConfigurationError",
    "ConnectionClosedError",
    "CredentialsRejectedError",
    "DirectoryConnectionError",
    "DirectoryError",
    "DirectoryTransportError",
    "DNNotFoundError",
    "PasswordEncodingError",
    "PasswordModifyError",
    "encode_password",
    "DirectoryConnection",
    "bind",
    "change_password",
    "connect",
    "reset_password",
    "reset_user_password",
    "resolve_dn",
    "verify_credentials",
]
