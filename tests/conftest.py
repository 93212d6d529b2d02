"""Test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio

from ldapauth.authenticator import LDAPAuthenticator
from ldapauth.config import LDAPAuthConfig

from .support.config import build_config
from .support.constants import (
    TEST_ADMIN_DN,
    TEST_ADMIN_PASSWORD,
    TEST_BASE_DN,
    TEST_USER_DN,
    TEST_USER_ENTRY,
    TEST_USER_PASSWORD,
)
from .support.ldap import MockLDAP, patch_ldap


@pytest.fixture
def config() -> LDAPAuthConfig:
    """Return the default test configuration."""
    return build_config("basic")


@pytest.fixture
def mock_ldap() -> Iterator[MockLDAP]:
    """Replace the bonsai API with a mock LDAP server.

    The mock server knows the privileged user and the ``riemann`` test user.
    """
    for mock_ldap in patch_ldap():
        mock_ldap.add_password_for_test(TEST_ADMIN_DN, TEST_ADMIN_PASSWORD)
        mock_ldap.add_password_for_test(TEST_USER_DN, TEST_USER_PASSWORD)
        mock_ldap.add_entries_for_test(
            TEST_BASE_DN, "(uid=riemann)", [TEST_USER_ENTRY]
        )
        yield mock_ldap


@pytest_asyncio.fixture
async def authenticator(
    config: LDAPAuthConfig, mock_ldap: MockLDAP
) -> AsyncIterator[LDAPAuthenticator]:
    """Return an authenticator using the default test configuration."""
    async with LDAPAuthenticator(config) as authenticator:
        yield authenticator
