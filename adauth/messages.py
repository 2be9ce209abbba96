"""User-facing texts for directory rejections.

Classification lives in `adauth.ad`; this module only chooses wording,
so callers can plug their own translations without touching the
classification tables.
"""
from __future__ import annotations

from .ad.models import AuthRejectReason

DEFAULT_LOCALE = "en"

_MESSAGES: dict[str, dict[AuthRejectReason, str]] = {
    "en": {
        AuthRejectReason.INVALID_CREDENTIALS: "Incorrect username or password.",
        AuthRejectReason.MUST_CHANGE_PASSWORD: "The password must be changed before this account can be used.",
        AuthRejectReason.ACCOUNT_LOCKED: "The account is locked. Contact your administrator.",
        AuthRejectReason.PASSWORD_EXPIRED: "The password has expired. Contact your administrator to reset it.",
        AuthRejectReason.ACCOUNT_DISABLED: "The account is disabled. Contact your administrator.",
        AuthRejectReason.ACCOUNT_EXPIRED: "The account has expired. Contact your administrator.",
        AuthRejectReason.POLICY_VIOLATION: "The new password does not meet the password policy.",
        AuthRejectReason.CHANGE_NOT_PERMITTED: "This account is not allowed to change its password.",
        AuthRejectReason.UNKNOWN: "The directory rejected the request.",
    },
    "ru": {
        AuthRejectReason.INVALID_CREDENTIALS: "Неверный логин или пароль.",
        AuthRejectReason.MUST_CHANGE_PASSWORD: "Необходимо сменить пароль перед использованием учётной записи.",
        AuthRejectReason.ACCOUNT_LOCKED: "Учётная запись заблокирована, обратитесь к администратору.",
        AuthRejectReason.PASSWORD_EXPIRED: "Срок действия пароля истёк, обратитесь к администратору.",
        AuthRejectReason.ACCOUNT_DISABLED: "Учётная запись отключена, обратитесь к администратору.",
        AuthRejectReason.ACCOUNT_EXPIRED: "Срок действия учётной записи истёк, обратитесь к администратору.",
        AuthRejectReason.POLICY_VIOLATION: "Новый пароль не соответствует требованиям политики.",
        AuthRejectReason.CHANGE_NOT_PERMITTED: "Для этой учётной записи смена пароля запрещена.",
        AuthRejectReason.UNKNOWN: "Каталог отклонил запрос.",
    },
}


def available_locales() -> list[str]:
    return sorted(_MESSAGES)


def describe_reason(reason: AuthRejectReason, locale: str = DEFAULT_LOCALE, raw: str = "") -> str:
    """Text for `reason` in `locale` (falls back to English).

    For UNKNOWN the raw directory message is returned when there is one.
    """
    if reason is AuthRejectReason.UNKNOWN and raw:
        return raw
    key = (locale or DEFAULT_LOCALE).strip().lower().split("-", 1)[0].split("_", 1)[0]
    table = _MESSAGES.get(key) or _MESSAGES[DEFAULT_LOCALE]
    return table[reason]
