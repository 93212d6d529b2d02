"""Tests for group resolution."""

from __future__ import annotations

import bonsai
import pytest
import structlog

from ldapauth.config import LDAPAuthConfig
from ldapauth.exceptions import LDAPSearchError
from ldapauth.factory import create_group_resolver, create_ldap_client
from ldapauth.models.ldap import LDAPUser
from ldapauth.services.groups import LDAPGroupResolver, NullGroupResolver
from ldapauth.storage.ldap import LDAPStorage

from ..support.config import build_config
from ..support.constants import (
    TEST_ADMIN_DN,
    TEST_ADMIN_PASSWORD,
    TEST_GROUP_BASE_DN,
    TEST_USER_DN,
)
from ..support.ldap import MockLDAP

GROUP_FILTER = (
    "(&(objectClass=groupOfUniqueNames)(uniqueMember=uid=riemann,dc=example"
    ",dc=com))"
)
"""Group search filter expected for the test user."""

GROUP_ENTRIES = [
    {"dn": "ou=mathematicians,dc=example,dc=com", "cn": ["mathematicians"]},
    {"dn": "ou=scientists,dc=example,dc=com", "cn": ["scientists"]},
]
"""Group entries of the test user."""


def create_storage(config: LDAPAuthConfig) -> LDAPStorage:
    client = create_ldap_client(
        config, user=TEST_ADMIN_DN, password=TEST_ADMIN_PASSWORD
    )
    return LDAPStorage(config, client, structlog.get_logger("ldapauth"))


def make_user() -> LDAPUser:
    return LDAPUser(
        dn=TEST_USER_DN,
        attributes={"uid": ["riemann"], "entryUUID": ["1234-abcd"]},
    )


@pytest.mark.asyncio
async def test_not_configured(
    config: LDAPAuthConfig, mock_ldap: MockLDAP
) -> None:
    logger = structlog.get_logger("ldapauth")
    resolver = create_group_resolver(config, create_storage(config), logger)
    assert isinstance(resolver, NullGroupResolver)

    user = make_user()
    assert await resolver.resolve(user) is user
    assert user.groups is None
    assert "_groups" not in user.to_dict()
    assert mock_ldap.searches == []


@pytest.mark.asyncio
async def test_template(mock_ldap: MockLDAP) -> None:
    config = build_config("groups")
    logger = structlog.get_logger("ldapauth")
    resolver = create_group_resolver(config, create_storage(config), logger)
    assert isinstance(resolver, LDAPGroupResolver)
    mock_ldap.add_entries_for_test(
        TEST_GROUP_BASE_DN, GROUP_FILTER, GROUP_ENTRIES
    )

    user = await resolver.resolve(make_user())
    assert user.groups
    assert [g.dn for g in user.groups] == [g["dn"] for g in GROUP_ENTRIES]
    assert [g.get("cn") for g in user.groups] == [
        "mathematicians",
        "scientists",
    ]
    assert mock_ldap.searches == [
        (TEST_GROUP_BASE_DN, bonsai.LDAPSearchScope.SUB, GROUP_FILTER)
    ]
    assert user.to_dict()["_groups"] == [
        {"dn": "ou=mathematicians,dc=example,dc=com", "cn": "mathematicians"},
        {"dn": "ou=scientists,dc=example,dc=com", "cn": "scientists"},
    ]


@pytest.mark.asyncio
async def test_dn_property(mock_ldap: MockLDAP) -> None:
    config = build_config(
        "groups",
        groupSearchFilter="(memberUuid={{dn}})",
        groupSearchScope="one",
        groupDnProperty="entryUUID",
    )
    resolver = create_group_resolver(
        config, create_storage(config), structlog.get_logger("ldapauth")
    )
    user = await resolver.resolve(make_user())
    assert user.groups == []
    assert mock_ldap.searches == [
        (
            TEST_GROUP_BASE_DN,
            bonsai.LDAPSearchScope.ONELEVEL,
            "(memberUuid=1234-abcd)",
        )
    ]

    user = LDAPUser(dn=TEST_USER_DN, attributes={"uid": ["riemann"]})
    with pytest.raises(LDAPSearchError):
        await resolver.resolve(user)


@pytest.mark.asyncio
async def test_escaped_dn(mock_ldap: MockLDAP) -> None:
    config = build_config("groups", groupSearchFilter="(member={{dn}})")
    resolver = create_group_resolver(
        config, create_storage(config), structlog.get_logger("ldapauth")
    )
    user = LDAPUser(dn=r"cn=Riemann\, Bernhard (math),dc=example,dc=com")
    await resolver.resolve(user)
    assert mock_ldap.searches[0][2] == (
        r"(member=cn=Riemann\5C, Bernhard \28math\29,dc=example,dc=com)"
    )


@pytest.mark.asyncio
async def test_function(mock_ldap: MockLDAP) -> None:
    seen = []

    def group_filter(user: LDAPUser) -> str:
        seen.append(user)
        return f"(memberUid={user.get('uid')})"

    config = build_config("groups", groupSearchFilter=group_filter)
    resolver = create_group_resolver(
        config, create_storage(config), structlog.get_logger("ldapauth")
    )
    mock_ldap.add_entries_for_test(
        TEST_GROUP_BASE_DN, "(memberUid=riemann)", GROUP_ENTRIES[:1]
    )
    user = make_user()
    user = await resolver.resolve(user)
    assert seen == [user]
    assert user.groups
    assert [g.get("cn") for g in user.groups] == ["mathematicians"]


@pytest.mark.asyncio
async def test_search_error(mock_ldap: MockLDAP) -> None:
    config = build_config("groups")
    resolver = create_group_resolver(
        config, create_storage(config), structlog.get_logger("ldapauth")
    )
    mock_ldap.fail_next_search(bonsai.LDAPError("Insufficient access"))
    with pytest.raises(LDAPSearchError):
        await resolver.resolve(make_user())
