"""Mock bonsai LDAP API for testing."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import bonsai

from ldapauth import factory

_SearchResults = list[dict[str, Any]]

__all__ = [
    "MockLDAP",
    "MockLDAPClient",
    "MockLDAPConnection",
    "patch_ldap",
]


class MockLDAPConnection:
    """Mock of an open bonsai connection."""

    def __init__(self, ldap: MockLDAP, user: str | None) -> None:
        self.user = user
        self.closed = False
        self._ldap = ldap

    async def search(
        self,
        base: str,
        scope: bonsai.LDAPSearchScope,
        filter_exp: str,
        attrlist: list[str] | None,
        timeout: float | None,
    ) -> _SearchResults:
        assert not self.closed, "search on closed connection"
        return await self._ldap.search(
            base, scope, filter_exp, attrlist, timeout
        )

    def close(self) -> None:
        self.closed = True


class MockLDAPClient:
    """Mock of a bonsai client, which records its settings."""

    def __init__(self, ldap: MockLDAP, url: str, tls: bool = False) -> None:
        self.url = url
        self.tls = tls
        self.user: str | None = None
        self.password: str | None = None
        self.options: dict[str, Any] = {}
        self._ldap = ldap

    def set_credentials(
        self, mechanism: str, user: str, password: str | None
    ) -> None:
        assert mechanism == "SIMPLE"
        self.user = user
        self.password = password

    def set_ca_cert(self, name: str) -> None:
        self.options["ca_cert"] = name

    def set_ca_cert_dir(self, path: str) -> None:
        self.options["ca_cert_dir"] = path

    def set_cert_policy(self, policy: str) -> None:
        self.options["cert_policy"] = policy

    def set_raw_attributes(self, raw_list: list[str]) -> None:
        self.options["raw_attributes"] = raw_list

    def set_server_chase_referrals(self, value: bool) -> None:
        self.options["chase_referrals"] = value

    async def connect(
        self, is_async: bool = False, timeout: float | None = None
    ) -> MockLDAPConnection:
        assert is_async
        return await self._ldap.connect(self)


class MockLDAP:
    """Mock LDAP server for testing.

    Searches are answered from entries registered for an exact base DN and
    search filter. Binds succeed for anonymous clients and for identities
    registered with `add_password_for_test`.
    """

    def __init__(self) -> None:
        self.clients: list[MockLDAPClient] = []
        self.connections: list[MockLDAPConnection] = []
        self.binds: list[str | None] = []
        self.searches: list[tuple[str, bonsai.LDAPSearchScope, str]] = []
        self._entries: dict[str, dict[str, _SearchResults]]
        self._entries = defaultdict(dict)
        self._passwords: dict[str, str] = {}
        self._connect_errors: list[Exception] = []
        self._search_errors: list[Exception] = []

    def add_entries_for_test(
        self, base_dn: str, filter_exp: str, entries: _SearchResults
    ) -> None:
        """Add LDAP entries for testing.

        Parameters
        ----------
        base_dn
            The base DN of a search that should return these entries.
        filter_exp
            The exact search filter that will return these entries.
        entries
            The entries returned by that search, each including a ``dn``
            key. They will be filtered by the attribute list.
        """
        self._entries[base_dn][filter_exp] = entries

    def add_password_for_test(self, dn: str, password: str) -> None:
        """Allow binds as a DN with the given password."""
        self._passwords[dn] = password

    def fail_next_connect(self, error: Exception) -> None:
        """Raise an exception from the next connection attempt."""
        self._connect_errors.append(error)

    def fail_next_search(self, error: Exception) -> None:
        """Raise an exception from the next search."""
        self._search_errors.append(error)

    def create_client(self, url: str, tls: bool = False) -> MockLDAPClient:
        client = MockLDAPClient(self, url, tls)
        self.clients.append(client)
        return client

    async def connect(self, client: MockLDAPClient) -> MockLDAPConnection:
        await asyncio.sleep(0)
        self.binds.append(client.user)
        if self._connect_errors:
            raise self._connect_errors.pop(0)
        if client.user is not None:
            if self._passwords.get(client.user) != client.password:
                raise bonsai.AuthenticationError("Invalid credentials")
        conn = MockLDAPConnection(self, client.user)
        self.connections.append(conn)
        return conn

    async def search(
        self,
        base: str,
        scope: bonsai.LDAPSearchScope,
        filter_exp: str,
        attrlist: list[str] | None,
        timeout: float | None,
    ) -> _SearchResults:
        await asyncio.sleep(0)
        self.searches.append((base, scope, filter_exp))
        if self._search_errors:
            raise self._search_errors.pop(0)
        results = []
        for entry in self._entries[base].get(filter_exp, []):
            if attrlist is None:
                results.append(dict(entry))
            else:
                wanted = {a.lower() for a in attrlist} | {"dn"}
                results.append(
                    {k: v for k, v in entry.items() if k.lower() in wanted}
                )
        return results


def patch_ldap() -> Iterator[MockLDAP]:
    """Mock the bonsai API for testing.

    Returns
    -------
    MockLDAP
        The mock LDAP API.
    """
    mock_ldap = MockLDAP()
    with patch.object(factory, "LDAPClient") as mock_client:
        mock_client.side_effect = mock_ldap.create_client
        yield mock_ldap
