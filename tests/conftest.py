from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from adauth.ad.models import DirectoryConfig, SecurityMode


def make_entry(dn: str) -> SimpleNamespace:
    return SimpleNamespace(entry_dn=dn)


class FakeLdap:
    """Handles to the patched ldap3 classes and the single Connection instance."""

    def __init__(self, server_cls: MagicMock, connection_cls: MagicMock, tls_cls: MagicMock) -> None:
        self.server_cls = server_cls
        self.connection_cls = connection_cls
        self.tls_cls = tls_cls
        self.conn = connection_cls.return_value

    def entries(self, *dns: str) -> None:
        self.conn.entries = [make_entry(dn) for dn in dns]
        self.conn.result = {"result": 0, "description": "success", "message": ""}

    def bind_fails(self, result: int, message: str, description: str = "invalidCredentials") -> None:
        self.conn.bind.return_value = False
        self.conn.result = {"result": result, "description": description, "message": message}


@pytest.fixture
def fake_ldap():
    with patch("adauth.ad.client.Server") as server_cls, \
            patch("adauth.ad.client.Connection") as connection_cls, \
            patch("adauth.ad.client.Tls") as tls_cls:
        conn = connection_cls.return_value
        conn.open.return_value = None
        conn.start_tls.return_value = True
        conn.bind.return_value = True
        conn.modify.return_value = True
        conn.search.return_value = True
        conn.unbind.return_value = True
        conn.result = {"result": 0, "description": "success", "message": ""}
        conn.entries = []
        yield FakeLdap(server_cls, connection_cls, tls_cls)


@pytest.fixture
def config() -> DirectoryConfig:
    return DirectoryConfig(
        server="dc01.corp.example.com",
        port=636,
        security=SecurityMode.TLS,
        domain="corp.example.com",
    )
