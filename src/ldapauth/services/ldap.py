"""LDAP lookups for users."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..config import LDAPAuthConfig
from ..constants import USERNAME_PLACEHOLDER
from ..exceptions import AmbiguousUserError, MissingUsernameError
from ..models.ldap import LDAPUser
from ..storage.ldap import LDAPStorage
from ..util import build_filter

__all__ = ["LDAPService"]


class LDAPService:
    """Find user entries in LDAP.

    Parameters
    ----------
    config
        Authenticator configuration.
    ldap
        The underlying LDAP query layer.
    logger
        Logger to use.
    """

    def __init__(
        self, config: LDAPAuthConfig, ldap: LDAPStorage, logger: BoundLogger
    ) -> None:
        self._config = config
        self._ldap = ldap
        self._logger = logger

    async def find_user(self, username: str) -> LDAPUser | None:
        """Find the entry for a user.

        Parameters
        ----------
        username
            Username to search for. It is escaped before being substituted
            into the search filter.

        Returns
        -------
        LDAPUser or None
            The user entry, or `None` if no entry matched.

        Raises
        ------
        AmbiguousUserError
            Raised if more than one entry matched.
        MissingUsernameError
            Raised if the username is empty.
        LDAPError
            Raised if the search failed.
        """
        if not username:
            raise MissingUsernameError
        search = build_filter(
            self._config.search_filter, USERNAME_PLACEHOLDER, username
        )
        entries = await self._ldap.search(
            self._config.search_base,
            search,
            self._config.search_scope,
            self._config.user_attributes,
        )
        if len(entries) > 1:
            self._logger.warning(
                "Multiple LDAP entries for user",
                ldap_search=search,
                ldap_results=len(entries),
                user=username,
            )
            raise AmbiguousUserError(username, len(entries))
        if not entries:
            return None
        entry = entries[0]
        return LDAPUser(
            dn=entry.dn, attributes=entry.attributes, raw=entry.raw
        )
