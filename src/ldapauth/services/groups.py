"""Resolution of the groups of a user.

Group resolution is optional. Rather than checking whether it is configured
on every authentication, the authenticator is given one of two strategies
when it is created: `NullGroupResolver`, which returns the user unchanged, or
`LDAPGroupResolver`, which searches LDAP for the groups.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod

from structlog.stdlib import BoundLogger

from ..config import LDAPAuthConfig
from ..constants import DN_PLACEHOLDER
from ..exceptions import LDAPSearchError
from ..models.ldap import LDAPUser
from ..storage.ldap import LDAPStorage
from ..util import build_filter

__all__ = ["GroupResolver", "LDAPGroupResolver", "NullGroupResolver"]


class GroupResolver(metaclass=ABCMeta):
    """Base class for group resolution strategies."""

    @abstractmethod
    async def resolve(self, user: LDAPUser) -> LDAPUser:
        """Add group information to a user.

        Parameters
        ----------
        user
            User found by the user search.

        Returns
        -------
        LDAPUser
            The user, with group information added if available.

        Raises
        ------
        LDAPError
            Raised if the group search failed.
        """


class NullGroupResolver(GroupResolver):
    """Group resolver used when group searches are not configured."""

    async def resolve(self, user: LDAPUser) -> LDAPUser:
        return user


class LDAPGroupResolver(GroupResolver):
    """Resolve the groups of a user with an LDAP search.

    Parameters
    ----------
    config
        Authenticator configuration, which must set the group search base
        and filter.
    ldap
        The underlying LDAP query layer.
    logger
        Logger to use.
    """

    def __init__(
        self, config: LDAPAuthConfig, ldap: LDAPStorage, logger: BoundLogger
    ) -> None:
        if not config.group_search_base or not config.group_search_filter:
            raise ValueError("Group search base and filter not configured")
        self._config = config
        self._base = config.group_search_base
        self._filter = config.group_search_filter
        self._ldap = ldap
        self._logger = logger

    def build_filter(self, user: LDAPUser) -> str:
        """Build the group search filter for a user.

        Parameters
        ----------
        user
            User whose groups are wanted.

        Returns
        -------
        str
            The search filter.

        Raises
        ------
        LDAPSearchError
            Raised if the filter is a template and the user entry does not
            have the configured group DN property.
        """
        if callable(self._filter):
            return self._filter(user)
        attr = self._config.group_dn_property
        value = user.get(attr)
        if value is None:
            msg = f"User {user.dn} has no {attr} attribute for group search"
            raise LDAPSearchError(msg)
        if isinstance(value, bytes):
            value = value.decode()
        return build_filter(self._filter, DN_PLACEHOLDER, str(value))

    async def resolve(self, user: LDAPUser) -> LDAPUser:
        search = self.build_filter(user)
        groups = await self._ldap.search(
            self._base,
            search,
            self._config.group_search_scope,
            self._config.group_search_attributes,
        )
        self._logger.debug(
            "LDAP groups found",
            ldap_search=search,
            ldap_results=len(groups),
            user=user.dn,
        )
        user.groups = groups
        return user
