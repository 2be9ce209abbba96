from __future__ import annotations

import logging
import re
import ssl
from typing import Any, Optional

from ldap3 import (
    Server,
    Connection,
    NONE,
    SIMPLE,
    SUBTREE,
    AUTO_BIND_NONE,
    Tls,
    MODIFY_ADD,
    MODIFY_DELETE,
    MODIFY_REPLACE,
)
from ldap3.core.exceptions import LDAPException, LDAPSSLConfigurationError

from .errors import (
    ConfigurationError,
    ConnectionClosedError,
    CredentialsRejectedError,
    DirectoryConnectionError,
    DirectoryTransportError,
    DNNotFoundError,
    PasswordModifyError,
)
from .models import AuthRejectReason, BindOutcome, DirectoryConfig, SecurityMode
from .utils import (
    classify_bind_message,
    classify_modify_message,
    encode_password,
    escape_ldap_filter_value,
    result_text,
)

log = logging.getLogger(__name__)

PASSWORD_ATTRIBUTE = "unicodePwd"
RESULT_SUCCESS = 0
RESULT_SIZE_LIMIT_EXCEEDED = 4
RESULT_INVALID_CREDENTIALS = 49

_ATTRIBUTE_RE = re.compile(r"[A-Za-z][A-Za-z0-9-]*")


def _normalize_pem(pem: str) -> str:
    """Normalize PEM text (strip outer whitespace and normalize line endings)."""
    data = (pem or "").strip()
    return data.replace("\r\n", "\n").replace("\r", "\n")


def _build_tls(cfg: DirectoryConfig) -> Optional[Tls]:
    mode = cfg.security
    if mode is SecurityMode.NONE:
        return None

    if not mode.validates_certificates:
        # Insecure modes: no chain nor hostname validation, trust roots ignored.
        return _tls(cfg, {"validate": ssl.CERT_NONE, "sni": cfg.server})

    tls_kwargs: dict[str, Any] = {"validate": ssl.CERT_REQUIRED, "sni": cfg.server}
    ca_pem = _normalize_pem(cfg.ca_pem)
    if ca_pem:
        if "-----BEGIN CERTIFICATE-----" not in ca_pem or "-----END CERTIFICATE-----" not in ca_pem:
            raise ConfigurationError("CA PEM does not look like a certificate (expected BEGIN/END CERTIFICATE block)")
        tls_kwargs["ca_certs_data"] = ca_pem
    if cfg.ca_file:
        tls_kwargs["ca_certs_file"] = cfg.ca_file
    return _tls(cfg, tls_kwargs)


def _tls(cfg: DirectoryConfig, tls_kwargs: dict[str, Any]) -> Tls:
    try:
        return Tls(**tls_kwargs)
    except LDAPSSLConfigurationError as e:
        raise ConfigurationError(f"Configuration error: TLS settings for {cfg.address}: {e}") from e


def _validate_config(cfg: DirectoryConfig) -> None:
    if not isinstance(cfg.security, SecurityMode):
        raise ConfigurationError(f"Configuration error: invalid security mode {cfg.security!r}")
    if not (cfg.server or "").strip():
        raise ConfigurationError("Configuration error: empty server")
    if isinstance(cfg.port, bool) or not isinstance(cfg.port, int) or not (0 < cfg.port < 65536):
        raise ConfigurationError(f"Configuration error: invalid port {cfg.port!r}")


class DirectoryConnection:
    """One live directory session.

    Single use: once closed it cannot be reopened. Not safe for concurrent use.
    """

    def __init__(self, conn: Connection, config: DirectoryConfig) -> None:
        self.conn = conn
        self.config = config
        self.last_bind: Optional[BindOutcome] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_open(self) -> Connection:
        if self._closed:
            raise ConnectionClosedError(f"Connection to {self.config.address} is closed")
        return self.conn

    def ensure_writable(self) -> Connection:
        conn = self.ensure_open()
        if self.last_bind is not None and not self.last_bind.authenticated:
            raise CredentialsRejectedError(
                self.last_bind.reason or AuthRejectReason.UNKNOWN,
                self.last_bind.message,
            )
        return conn

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.conn.unbind()
        except LDAPException as e:
            log.debug("Unbind from %s failed: %s", self.config.address, e)

    def __enter__(self) -> "DirectoryConnection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect(cfg: DirectoryConfig) -> DirectoryConnection:
    """Open a transport to the directory per `cfg.security`.

    Raises ConfigurationError for a bad config and DirectoryConnectionError
    when the dial or TLS negotiation fails. Nothing is retried.
    """
    _validate_config(cfg)
    mode = cfg.security
    tls = _build_tls(cfg)

    server = Server(
        host=cfg.server,
        port=cfg.port,
        use_ssl=mode.implicit_tls,
        get_info=NONE,
        tls=tls,
        connect_timeout=cfg.connect_timeout,
    )
    conn = Connection(
        server,
        authentication=SIMPLE,
        auto_bind=AUTO_BIND_NONE,
        auto_referrals=False,
        raise_exceptions=False,
        receive_timeout=cfg.receive_timeout,
    )

    try:
        conn.open()
        if mode.start_tls and not conn.start_tls():
            raise DirectoryConnectionError(
                f"Connection error: StartTLS negotiation with {cfg.address} failed: {result_text(conn.result)}"
            )
    except DirectoryConnectionError:
        _discard(conn)
        raise
    except (LDAPException, OSError) as e:
        _discard(conn)
        raise DirectoryConnectionError(f"Connection error: {cfg.address}: {e}") from e

    log.info("Connected to %s (security=%s)", cfg.address, mode.value)
    return DirectoryConnection(conn, cfg)


def _discard(conn: Connection) -> None:
    try:
        conn.unbind()
    except LDAPException:
        pass


def bind(connection: DirectoryConnection, principal: str, secret: str) -> BindOutcome:
    """Authenticate `principal` (UPN) with `secret` on an open connection."""
    conn = connection.ensure_open()

    if not secret:
        # No round-trip: an empty password would be an unauthenticated bind.
        outcome = BindOutcome.rejected(AuthRejectReason.INVALID_CREDENTIALS, "empty password")
        connection.last_bind = outcome
        return outcome

    conn.user = principal
    conn.password = secret
    try:
        ok = bool(conn.bind())
    except (LDAPException, OSError) as e:
        log.warning("Bind error (%s): %s", principal, e)
        outcome = BindOutcome.transport_error(e)
    else:
        if ok:
            outcome = BindOutcome.success()
        else:
            res = dict(conn.result or {})
            if res.get("result") == RESULT_INVALID_CREDENTIALS:
                raw = str(res.get("message") or res.get("description") or "")
                outcome = BindOutcome.rejected(classify_bind_message(raw), raw)
            else:
                outcome = BindOutcome.transport_error(
                    DirectoryTransportError(f"Bind error ({principal}): {result_text(res)}")
                )
    finally:
        conn.password = None

    if outcome.authenticated:
        log.info("Bind succeeded for %s", principal)
    elif outcome.reason is not None:
        log.info("Bind rejected for %s: %s", principal, outcome.reason.value)
    connection.last_bind = outcome
    return outcome


def resolve_dn(connection: DirectoryConnection, attribute: str, value: str) -> str:
    """Return the DN of the single entry where `attribute` equals `value`."""
    conn = connection.ensure_open()
    base = connection.config.search_base
    if not base:
        raise ConfigurationError("Configuration error: no search base (set base_dn or domain)")

    if not _ATTRIBUTE_RE.fullmatch(attribute or ""):
        raise ConfigurationError(f"Configuration error: invalid attribute name {attribute!r}")
    flt = f"({attribute}={escape_ldap_filter_value(value)})"
    try:
        conn.search(
            search_base=base,
            search_filter=flt,
            search_scope=SUBTREE,
            attributes=["distinguishedName"],
            size_limit=2,
        )
    except LDAPException as e:
        raise DirectoryTransportError(f"Search error ({flt}): {e}") from e

    entries = list(conn.entries or [])
    res = dict(conn.result or {})
    if not entries and res.get("result") not in (None, RESULT_SUCCESS, RESULT_SIZE_LIMIT_EXCEEDED):
        raise DirectoryTransportError(f"Search error ({flt}): {result_text(res)}")
    if len(entries) != 1:
        raise DNNotFoundError(attribute, value, len(entries))
    return str(entries[0].entry_dn)


def _modify_password(connection: DirectoryConnection, dn: str, changes: list[tuple[int, list[bytes]]]) -> None:
    conn = connection.ensure_writable()
    try:
        ok = bool(conn.modify(dn, {PASSWORD_ATTRIBUTE: changes}))
        raw = "" if ok else result_text(conn.result)
    except LDAPException as e:
        ok = False
        raw = str(e)

    if ok:
        return
    reason = classify_modify_message(raw)
    if reason is AuthRejectReason.UNKNOWN:
        raise PasswordModifyError(reason, f"Unable to modify password: {raw}")
    raise PasswordModifyError(reason, raw)


def reset_password(connection: DirectoryConnection, dn: str, new_password: str) -> None:
    """Administrative reset: replace unicodePwd without proof of the old value.

    The connection must already be bound with enough privilege.
    """
    encoded = encode_password(new_password)
    if connection.config.security is SecurityMode.NONE:
        log.warning("Password reset for %s over an unencrypted connection; the directory will likely refuse it", dn)
    _modify_password(connection, dn, [(MODIFY_REPLACE, [encoded])])
    log.info("Password reset for %s", dn)


def change_password(cfg: DirectoryConfig, username: str, old_password: str, new_password: str) -> None:
    """Self-service change.

    Proves the old password by binding with it, then deletes the old value
    and adds the new one in one modify, so the directory itself re-checks
    the old password at the moment of the change.
    """
    old_encoded = encode_password(old_password)
    new_encoded = encode_password(new_password)
    upn = cfg.upn(username)

    with connect(cfg) as connection:
        outcome = bind(connection, upn, old_password)
        if outcome.cause is not None:
            raise DirectoryTransportError(f"Bind error ({upn}): {outcome.message}") from outcome.cause
        if not outcome.authenticated:
            raise CredentialsRejectedError(outcome.reason or AuthRejectReason.UNKNOWN, outcome.message)

        dn = resolve_dn(connection, "userPrincipalName", upn)
        _modify_password(connection, dn, [(MODIFY_DELETE, [old_encoded]), (MODIFY_ADD, [new_encoded])])

    log.info("Password changed for %s", upn)


def verify_credentials(cfg: DirectoryConfig, username: str, password: str) -> BindOutcome:
    upn = cfg.upn(username)
    with connect(cfg) as connection:
        return bind(connection, upn, password)


def reset_user_password(
    cfg: DirectoryConfig,
    admin_username: str,
    admin_password: str,
    username: str,
    new_password: str,
) -> None:
    """Bind as an administrator and reset `username`'s password."""
    encode_password(new_password)
    admin_upn = cfg.upn(admin_username)
    upn = cfg.upn(username)

    with connect(cfg) as connection:
        outcome = bind(connection, admin_upn, admin_password)
        if outcome.cause is not None:
            raise DirectoryTransportError(f"Bind error ({admin_upn}): {outcome.message}") from outcome.cause
        if not outcome.authenticated:
            raise CredentialsRejectedError(outcome.reason or AuthRejectReason.UNKNOWN, outcome.message)

        dn = resolve_dn(connection, "userPrincipalName", upn)
        reset_password(connection, dn, new_password)
