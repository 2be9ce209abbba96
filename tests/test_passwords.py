from __future__ import annotations

from dataclasses import replace

import pytest
from ldap3 import MODIFY_ADD, MODIFY_DELETE, MODIFY_REPLACE
from ldap3.core.exceptions import LDAPSocketOpenError, LDAPSocketReceiveError

from adauth.ad.client import bind, change_password, connect, reset_password, reset_user_password
from adauth.ad.errors import (
    ConfigurationError,
    CredentialsRejectedError,
    DirectoryConnectionError,
    DirectoryTransportError,
    DNNotFoundError,
    PasswordEncodingError,
    PasswordModifyError,
)
from adauth.ad.models import AuthRejectReason, SecurityMode
from adauth.ad.utils import encode_password

USER_DN = "CN=John Doe,OU=Staff,DC=corp,DC=example,DC=com"
BAD_PASSWORD = "80090308: LdapErr: DSID-0C09042A, comment: AcceptSecurityContext error, data 52e, v3839"


def _modify_fails(fake_ldap, message: str, result: int = 19, description: str = "constraintViolation") -> None:
    fake_ldap.conn.modify.return_value = False

    def _set_result(*args, **kwargs):
        fake_ldap.conn.result = {"result": result, "description": description, "message": message}
        return False

    fake_ldap.conn.modify.side_effect = _set_result


# administrative reset

def test_reset_uses_single_replace(fake_ldap, config) -> None:
    conn = connect(config)
    bind(conn, "admin@corp.example.com", "Adm1n!")

    reset_password(conn, USER_DN, "N3w-Passw0rd")

    fake_ldap.conn.modify.assert_called_once_with(
        USER_DN, {"unicodePwd": [(MODIFY_REPLACE, [encode_password("N3w-Passw0rd")])]}
    )


def test_reset_refused_after_rejected_bind(fake_ldap, config) -> None:
    fake_ldap.bind_fails(49, BAD_PASSWORD)
    conn = connect(config)
    bind(conn, "admin@corp.example.com", "wrong")

    with pytest.raises(CredentialsRejectedError):
        reset_password(conn, USER_DN, "N3w-Passw0rd")
    fake_ldap.conn.modify.assert_not_called()


def test_reset_policy_violation(fake_ldap, config) -> None:
    _modify_fails(fake_ldap, "0000052D: Constraint violation - check_password_restrictions: the password is too short.")
    conn = connect(config)

    with pytest.raises(PasswordModifyError) as ei:
        reset_password(conn, USER_DN, "x")
    assert ei.value.reason is AuthRejectReason.POLICY_VIOLATION


def test_reset_over_plaintext_warns(fake_ldap, config, caplog) -> None:
    conn = connect(replace(config, security=SecurityMode.NONE, port=389))

    with caplog.at_level("WARNING", logger="adauth"):
        reset_password(conn, USER_DN, "N3w-Passw0rd")

    assert "unencrypted" in caplog.text
    assert "N3w-Passw0rd" not in caplog.text


def test_reset_user_password_end_to_end(fake_ldap, config) -> None:
    fake_ldap.entries(USER_DN)

    reset_user_password(config, "admin", "Adm1n!", "jdoe", "N3w-Passw0rd")

    assert fake_ldap.conn.user == "admin@corp.example.com"
    assert fake_ldap.conn.search.call_args.kwargs["search_filter"] == "(userPrincipalName=jdoe@corp.example.com)"
    fake_ldap.conn.modify.assert_called_once()
    fake_ldap.conn.unbind.assert_called_once()


# self-service change

def test_change_password_deletes_old_and_adds_new(fake_ldap, config) -> None:
    fake_ldap.entries(USER_DN)

    change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    assert fake_ldap.conn.user == "jdoe@corp.example.com"
    fake_ldap.conn.modify.assert_called_once_with(
        USER_DN,
        {
            "unicodePwd": [
                (MODIFY_DELETE, [encode_password("0ld-Passw0rd")]),
                (MODIFY_ADD, [encode_password("N3w-Passw0rd")]),
            ]
        },
    )
    ops = [op for op, _ in fake_ldap.conn.modify.call_args.args[1]["unicodePwd"]]
    assert MODIFY_REPLACE not in ops
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_bind_rejected(fake_ldap, config) -> None:
    fake_ldap.bind_fails(49, BAD_PASSWORD)

    with pytest.raises(CredentialsRejectedError) as ei:
        change_password(config, "jdoe", "wrong", "N3w-Passw0rd")

    assert ei.value.reason is AuthRejectReason.INVALID_CREDENTIALS
    fake_ldap.conn.search.assert_not_called()
    fake_ldap.conn.modify.assert_not_called()
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_bind_transport_error(fake_ldap, config) -> None:
    fake_ldap.conn.bind.side_effect = LDAPSocketReceiveError("connection reset")

    with pytest.raises(DirectoryTransportError):
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    fake_ldap.conn.modify.assert_not_called()
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_empty_old_password(fake_ldap, config) -> None:
    with pytest.raises(CredentialsRejectedError):
        change_password(config, "jdoe", "", "N3w-Passw0rd")

    fake_ldap.conn.bind.assert_not_called()
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_resolve_fails(fake_ldap, config) -> None:
    fake_ldap.entries()

    with pytest.raises(DNNotFoundError):
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    fake_ldap.conn.modify.assert_not_called()
    fake_ldap.conn.unbind.assert_called_once()


@pytest.mark.parametrize(
    "message, reason",
    [
        ("0000052D: Constraint violation - check_password_restrictions", AuthRejectReason.POLICY_VIOLATION),
        ("00000056: AtrErr: DSID-03190F80, #1: 0: 00000056: DSID-03190F80, problem 1005", AuthRejectReason.INVALID_CREDENTIALS),
        ("00000005: SecErr: DSID-031A11E2, problem 4003 (INSUFF_ACCESS_RIGHTS)", AuthRejectReason.CHANGE_NOT_PERMITTED),
    ],
)
def test_change_password_modify_classified(fake_ldap, config, message, reason) -> None:
    fake_ldap.entries(USER_DN)
    _modify_fails(fake_ldap, message)

    with pytest.raises(PasswordModifyError) as ei:
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    assert ei.value.reason is reason
    assert message in ei.value.message
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_modify_unknown(fake_ldap, config) -> None:
    fake_ldap.entries(USER_DN)
    _modify_fails(fake_ldap, "0000001F: SvcErr: DSID-031A12D2, problem 5003 (WILL_NOT_PERFORM)", 53, "unwillingToPerform")

    with pytest.raises(PasswordModifyError) as ei:
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    assert ei.value.reason is AuthRejectReason.UNKNOWN
    assert ei.value.message.startswith("Unable to modify password: ")
    assert "WILL_NOT_PERFORM" in ei.value.message
    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_modify_exception(fake_ldap, config) -> None:
    fake_ldap.entries(USER_DN)
    fake_ldap.conn.modify.side_effect = LDAPSocketReceiveError("connection reset")

    with pytest.raises(PasswordModifyError):
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    fake_ldap.conn.unbind.assert_called_once()


def test_change_password_encoding_fails_before_dial(fake_ldap, config) -> None:
    with pytest.raises(PasswordEncodingError):
        change_password(config, "jdoe", "0ld-Passw0rd", "bad\udc80")

    fake_ldap.server_cls.assert_not_called()


def test_change_password_connect_fails(fake_ldap, config) -> None:
    fake_ldap.conn.open.side_effect = LDAPSocketOpenError("unreachable")

    with pytest.raises(DirectoryConnectionError):
        change_password(config, "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    fake_ldap.conn.bind.assert_not_called()


def test_change_password_needs_domain_for_upn(fake_ldap, config) -> None:
    with pytest.raises(ConfigurationError):
        change_password(replace(config, domain=""), "jdoe", "0ld-Passw0rd", "N3w-Passw0rd")

    fake_ldap.server_cls.assert_not_called()


def test_change_password_keeps_explicit_upn(fake_ldap, config) -> None:
    fake_ldap.entries(USER_DN)

    change_password(config, "john.doe@corp.example.com", "0ld-Passw0rd", "N3w-Passw0rd")

    assert fake_ldap.conn.user == "john.doe@corp.example.com"
