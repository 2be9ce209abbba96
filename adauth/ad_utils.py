from __future__ import annotations

import ipaddress


def domain_to_base_dn(domain: str) -> str:
    domain = (domain or "").strip().strip(".")
    if not domain or "." not in domain:
        return ""
    parts = [p for p in domain.split(".") if p]
    return ",".join([f"DC={p}" for p in parts])


def build_dc_fqdn(dc_short: str, domain: str) -> str:
    dc_short = (dc_short or "").strip()
    domain = (domain or "").strip().strip(".")
    if not dc_short:
        return domain

    # IP addresses are used as-is
    try:
        ipaddress.ip_address(dc_short)
        return dc_short
    except ValueError:
        if "." in dc_short:
            return dc_short
        return f"{dc_short}.{domain}" if domain else dc_short


def principal_name(username: str, domain: str) -> str:
    """`user` -> `user@domain`; names that already carry a realm are kept.

    `DOMAIN\\user` is reduced to `user` first, since a UPN is required for bind.
    """
    u = (username or "").strip()
    d = (domain or "").strip().strip(".")
    if not u:
        return ""
    if "@" in u:
        return u
    if "\\" in u:
        u = u.split("\\", 1)[1]
    return f"{u}@{d}" if d else u
