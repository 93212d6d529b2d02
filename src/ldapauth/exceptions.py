"""Exceptions for ldapauth."""

from __future__ import annotations

__all__ = [
    "AmbiguousUserError",
    "CredentialHashError",
    "InputValidationError",
    "LDAPAuthError",
    "LDAPBindError",
    "LDAPConnectionError",
    "LDAPError",
    "LDAPSearchError",
    "MissingPasswordError",
    "MissingUsernameError",
    "NoSuchUserError",
]


class LDAPAuthError(Exception):
    """Base class for all authentication failures."""


class InputValidationError(LDAPAuthError):
    """The caller passed invalid credentials before any lookup was done."""


class MissingPasswordError(InputValidationError):
    """No password was given."""

    def __init__(self) -> None:
        super().__init__("no password given")


class MissingUsernameError(InputValidationError):
    """No username was given."""

    def __init__(self) -> None:
        super().__init__("empty username")


class NoSuchUserError(LDAPAuthError):
    """The user search found no matching entry.

    Parameters
    ----------
    username
        Username that was searched for.
    """

    def __init__(self, username: str) -> None:
        super().__init__(f'no such user: "{username}"')
        self.username = username


class AmbiguousUserError(LDAPAuthError):
    """The user search matched more than one entry.

    This indicates a problem with either the search filter or the directory
    data and is never resolved by retrying.

    Parameters
    ----------
    username
        Username that was searched for.
    count
        Number of matching entries.
    """

    def __init__(self, username: str, count: int) -> None:
        msg = (
            f'unexpected number of matches ({count}) for "{username}"'
            " username"
        )
        super().__init__(msg)
        self.username = username
        self.count = count


class LDAPError(LDAPAuthError):
    """An LDAP operation failed."""


class LDAPConnectionError(LDAPError):
    """The connection to the LDAP server failed or was lost."""


class LDAPBindError(LDAPError):
    """The LDAP server rejected a bind."""


class LDAPSearchError(LDAPError):
    """An LDAP search failed."""


class CredentialHashError(LDAPAuthError):
    """Hashing or verifying a password for the credential cache failed."""
