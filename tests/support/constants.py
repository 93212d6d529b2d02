"""Constants used in test fixtures and setup."""

__all__ = [
    "TEST_ADMIN_DN",
    "TEST_ADMIN_PASSWORD",
    "TEST_BASE_DN",
    "TEST_GROUP_BASE_DN",
    "TEST_LDAP_URL",
    "TEST_USER_DN",
    "TEST_USER_ENTRY",
    "TEST_USER_PASSWORD",
]

TEST_LDAP_URL = "ldap://ldap.example.com"
"""URL of the mock LDAP server."""

TEST_BASE_DN = "dc=example,dc=com"
"""Base DN of user searches."""

TEST_GROUP_BASE_DN = "ou=groups,dc=example,dc=com"
"""Base DN of group searches."""

TEST_ADMIN_DN = "cn=read-only-admin,dc=example,dc=com"
"""DN of the privileged user."""

TEST_ADMIN_PASSWORD = "admin-password"
"""Password of the privileged user."""

TEST_USER_DN = "uid=riemann,dc=example,dc=com"
"""DN of the test user."""

TEST_USER_PASSWORD = "password"
"""Password of the test user."""

TEST_USER_ENTRY = {
    "dn": TEST_USER_DN,
    "uid": ["riemann"],
    "cn": ["Bernhard Riemann"],
    "mail": ["riemann@ldap.forumsys.com"],
    "objectClass": ["inetOrgPerson", "organizationalPerson", "person", "top"],
}
"""Directory entry of the test user."""
