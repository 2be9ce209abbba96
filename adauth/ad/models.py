from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..ad_utils import domain_to_base_dn, principal_name
from .errors import ConfigurationError


class SecurityMode(Enum):
    NONE = "none"
    TLS = "tls"
    START_TLS = "starttls"
    INSECURE_TLS = "insecure_tls"
    INSECURE_START_TLS = "insecure_starttls"

    @property
    def implicit_tls(self) -> bool:
        """TLS from the first byte (LDAPS)."""
        return self in (SecurityMode.TLS, SecurityMode.INSECURE_TLS)

    @property
    def start_tls(self) -> bool:
        return self in (SecurityMode.START_TLS, SecurityMode.INSECURE_START_TLS)

    @property
    def validates_certificates(self) -> bool:
        return self in (SecurityMode.TLS, SecurityMode.START_TLS)

    @classmethod
    def parse(cls, value: "str | SecurityMode") -> "SecurityMode":
        if isinstance(value, SecurityMode):
            return value
        key = (value or "").strip().lower().replace("-", "_")
        aliases = {
            "none": cls.NONE,
            "plain": cls.NONE,
            "tls": cls.TLS,
            "ldaps": cls.TLS,
            "starttls": cls.START_TLS,
            "start_tls": cls.START_TLS,
            "insecure_tls": cls.INSECURE_TLS,
            "insecure_ldaps": cls.INSECURE_TLS,
            "insecure_starttls": cls.INSECURE_START_TLS,
            "insecure_start_tls": cls.INSECURE_START_TLS,
        }
        try:
            return aliases[key]
        except KeyError:
            raise ConfigurationError(f"Invalid security mode: {value!r}") from None


class AuthRejectReason(Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    MUST_CHANGE_PASSWORD = "must_change_password"
    ACCOUNT_LOCKED = "account_locked"
    PASSWORD_EXPIRED = "password_expired"
    ACCOUNT_DISABLED = "account_disabled"
    ACCOUNT_EXPIRED = "account_expired"
    POLICY_VIOLATION = "policy_violation"
    CHANGE_NOT_PERMITTED = "change_not_permitted"
    UNKNOWN = "unknown"


class BindStatus(Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class BindOutcome:
    """Result of a single bind attempt.

    `message` holds the directory's diagnostic text verbatim, so an
    `UNKNOWN` rejection can still be diagnosed by an operator.
    """

    status: BindStatus
    reason: Optional[AuthRejectReason] = None
    message: str = ""
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "BindOutcome":
        return cls(status=BindStatus.AUTHENTICATED)

    @classmethod
    def rejected(cls, reason: AuthRejectReason, message: str = "") -> "BindOutcome":
        return cls(status=BindStatus.REJECTED, reason=reason, message=message)

    @classmethod
    def transport_error(cls, cause: BaseException) -> "BindOutcome":
        return cls(status=BindStatus.TRANSPORT_ERROR, message=str(cause), cause=cause)

    @property
    def authenticated(self) -> bool:
        return self.status is BindStatus.AUTHENTICATED


@dataclass(frozen=True)
class DirectoryConfig:
    server: str
    port: int = 389
    security: SecurityMode = SecurityMode.START_TLS
    ca_pem: str = ""
    ca_file: str = ""
    domain: str = ""
    base_dn: str = ""
    connect_timeout: Optional[float] = 5.0
    receive_timeout: Optional[float] = 10.0

    @property
    def address(self) -> str:
        return f"{self.server}:{self.port}"

    @property
    def search_base(self) -> str:
        return (self.base_dn or "").strip() or domain_to_base_dn(self.domain)

    def upn(self, username: str) -> str:
        """userPrincipalName used for bind (`user@domain`)."""
        u = (username or "").strip()
        if not u:
            raise ConfigurationError("Empty username.")
        upn = principal_name(u, self.domain)
        if "@" not in upn:
            raise ConfigurationError(f"Cannot derive userPrincipalName for {u!r}: no domain configured.")
        return upn
