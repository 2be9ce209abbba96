from __future__ import annotations

import re
from typing import Any

from .errors import PasswordEncodingError
from .models import AuthRejectReason

# AD diagnostic sub-codes reported with invalidCredentials (49).
BIND_SUBCODES: tuple[tuple[str, AuthRejectReason], ...] = (
    ("52e", AuthRejectReason.INVALID_CREDENTIALS),
    ("773", AuthRejectReason.MUST_CHANGE_PASSWORD),
    ("775", AuthRejectReason.ACCOUNT_LOCKED),
    ("532", AuthRejectReason.PASSWORD_EXPIRED),
    ("533", AuthRejectReason.ACCOUNT_DISABLED),
    ("701", AuthRejectReason.ACCOUNT_EXPIRED),
)

# Win32 error markers in the text of a failed unicodePwd modify.
MODIFY_MARKERS: tuple[tuple[str, AuthRejectReason], ...] = (
    ("0000052D", AuthRejectReason.POLICY_VIOLATION),
    ("00000056", AuthRejectReason.INVALID_CREDENTIALS),
    ("00000005", AuthRejectReason.CHANGE_NOT_PERMITTED),
)

_DATA_RE = re.compile(r"\bdata\s+([0-9a-fA-F]+)")


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def encode_password(plaintext: Any) -> bytes:
    """Encode a password for the unicodePwd attribute.

    AD expects the UTF-16LE bytes (no BOM) of the password wrapped in
    double quotes.
    """
    if not isinstance(plaintext, str):
        raise PasswordEncodingError(f"Password must be str, not {type(plaintext).__name__}")
    try:
        return f'"{plaintext}"'.encode("utf-16-le")
    except UnicodeEncodeError as e:
        raise PasswordEncodingError(f"Unable to encode password: {e.reason}") from e


def classify_bind_message(message: str) -> AuthRejectReason:
    """Map the diagnostic text of an invalidCredentials bind failure.

    The sub-code normally follows `data` (`... AcceptSecurityContext error,
    data 775, v4563`); messages without it are scanned for the known codes.
    """
    text = message or ""
    m = _DATA_RE.search(text)
    if m:
        code = m.group(1).lower()
        for sub, reason in BIND_SUBCODES:
            if code == sub:
                return reason
        return AuthRejectReason.UNKNOWN

    lowered = text.lower()
    for sub, reason in BIND_SUBCODES:
        if sub in lowered:
            return reason
    return AuthRejectReason.UNKNOWN


def classify_modify_message(message: str) -> AuthRejectReason:
    text = (message or "").upper()
    for marker, reason in MODIFY_MARKERS:
        if marker in text:
            return reason
    return AuthRejectReason.UNKNOWN


def result_text(result: dict | None) -> str:
    """Flatten an ldap3 result dict into a single diagnostic string."""
    res = dict(result or {})
    desc = str(res.get("description") or "").strip()
    msg = str(res.get("message") or "").strip()
    if desc and msg:
        return f"{desc}: {msg}"
    return msg or desc or "unknown error"
