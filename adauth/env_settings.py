from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .ad.errors import ConfigurationError
from .ad.models import DirectoryConfig, SecurityMode
from .ad_utils import build_dc_fqdn


class EnvSettings(BaseSettings):
    server: str = Field("", alias="ADAUTH_SERVER")
    port: int = Field(389, alias="ADAUTH_PORT", ge=1, le=65535)
    security: str = Field("starttls", alias="ADAUTH_SECURITY")
    domain: str = Field("", alias="ADAUTH_DOMAIN")
    base_dn: str = Field("", alias="ADAUTH_BASE_DN")

    ca_pem: str = Field("", alias="ADAUTH_CA_PEM")
    ca_file: str = Field("", alias="ADAUTH_CA_FILE")

    connect_timeout: Optional[float] = Field(5.0, alias="ADAUTH_CONNECT_TIMEOUT")
    receive_timeout: Optional[float] = Field(10.0, alias="ADAUTH_RECEIVE_TIMEOUT")

    log_level: str = Field("INFO", alias="ADAUTH_LOG_LEVEL")
    locale: str = Field("en", alias="ADAUTH_LOCALE")

    class Config:
        extra = "ignore"

    @field_validator("server", "base_dn", "ca_file")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("domain")
    @classmethod
    def _validate_domain(cls, v: str) -> str:
        s = (v or "").strip().lower()
        if not s:
            return s
        if s[-1] in ".,;":
            raise ValueError("Domain name must not end with a dot, comma or semicolon.")
        for lab in s.split("."):
            if not re.fullmatch(r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?", lab):
                raise ValueError(f"Invalid domain name: bad label '{lab}'.")
        if len(s) > 253:
            raise ValueError("Invalid domain name: too long (max 253).")
        return s

    @field_validator("security")
    @classmethod
    def _validate_security(cls, v: str) -> str:
        # ConfigurationError is not a ValueError, surface it as one for pydantic.
        try:
            return SecurityMode.parse(v).value
        except ConfigurationError as e:
            raise ValueError(str(e)) from e

    def directory_config(self) -> DirectoryConfig:
        return DirectoryConfig(
            server=build_dc_fqdn(self.server, self.domain),
            port=self.port,
            security=SecurityMode.parse(self.security),
            ca_pem=self.ca_pem,
            ca_file=self.ca_file,
            domain=self.domain,
            base_dn=self.base_dn,
            connect_timeout=self.connect_timeout,
            receive_timeout=self.receive_timeout,
        )


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
