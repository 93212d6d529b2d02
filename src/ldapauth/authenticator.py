"""Authenticate users against LDAP."""

from __future__ import annotations

from functools import partial
from types import TracebackType
from typing import Literal, Self

import structlog
from structlog.stdlib import BoundLogger

from .cache import CredentialCache
from .config import LDAPAuthConfig
from .exceptions import LDAPBindError, MissingPasswordError, NoSuchUserError
from .factory import create_group_resolver, create_ldap_client
from .models.ldap import LDAPUser
from .services.ldap import LDAPService
from .storage.ldap import ErrorHandler, LDAPBindVerifier, LDAPStorage

__all__ = ["LDAPAuthenticator"]


class LDAPAuthenticator:
    """Authenticate a username and password against LDAP.

    Authentication finds the user's entry with a search on a shared,
    privileged connection, then checks the password by binding as that
    entry on a separate connection that is never used for searches. If
    configured, the user's groups are then added with a second search and
    the result is cached.

    Parameters
    ----------
    config
        Authenticator configuration.
    logger
        Logger to use. Defaults to the ``ldapauth`` logger.

    Notes
    -----
    Concurrent calls to `authenticate` share the privileged connection. A
    connection failure seen by one call therefore causes the next search by
    any call to open and bind a new connection.
    """

    def __init__(
        self, config: LDAPAuthConfig, *, logger: BoundLogger | None = None
    ) -> None:
        self._config = config
        self._logger = logger or structlog.get_logger("ldapauth")
        self._error_handlers: list[ErrorHandler] = []

        password = None
        if config.bind_credentials:
            password = config.bind_credentials.get_secret_value()
        client = create_ldap_client(
            config, user=config.bind_dn, password=password
        )
        self._ldap = LDAPStorage(
            config, client, self._logger, on_error=self._handle_error
        )
        self._verifier = LDAPBindVerifier(
            config,
            partial(create_ldap_client, config),
            self._logger,
            on_error=self._ldap.report_connection_error,
        )
        self._ldap_service = LDAPService(config, self._ldap, self._logger)
        self._group_resolver = create_group_resolver(
            config, self._ldap, self._logger
        )
        self._cache = CredentialCache() if config.cache else None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        await self.close()
        return False

    @property
    def cache(self) -> CredentialCache | None:
        """The credential cache, if caching is enabled."""
        return self._cache

    def add_error_handler(self, handler: ErrorHandler) -> None:
        """Register a handler for connection-level errors.

        Handlers are called with errors from both the privileged and the
        verification connections, independent of which authentication (if
        any) saw them. The usual response is to `close` the authenticator.

        Parameters
        ----------
        handler
            Function called with the exception.
        """
        self._error_handlers.append(handler)

    def remove_error_handler(self, handler: ErrorHandler) -> None:
        """Unregister a handler for connection-level errors.

        Parameters
        ----------
        handler
            Handler previously passed to `add_error_handler`.
        """
        self._error_handlers.remove(handler)

    async def authenticate(self, username: str, password: str) -> LDAPUser:
        """Authenticate a user.

        Parameters
        ----------
        username
            Username to authenticate.
        password
            Password of the user.

        Returns
        -------
        LDAPUser
            The user entry, with its groups if group searches are configured.
            The caller may modify it freely.

        Raises
        ------
        AmbiguousUserError
            Raised if more than one entry matched the username.
        CredentialHashError
            Raised if the password could not be hashed for the cache.
        InputValidationError
            Raised if the username or password is empty.
        LDAPError
            Raised if an LDAP operation failed, including a failed bind with
            the user's password.
        NoSuchUserError
            Raised if no entry matched the username.
        """
        if not password:
            raise MissingPasswordError
        logger = self._logger.bind(user=username)

        if self._cache is not None:
            cached = await self._cache.check(username, password)
            if cached:
                logger.debug("Authenticated user from cache")
                return cached

        user = await self._ldap_service.find_user(username)
        if not user:
            logger.debug("User not found in LDAP")
            raise NoSuchUserError(username)

        bind_property = self._config.bind_property
        bind_dn = user.get(bind_property)
        if bind_dn is None:
            msg = f"User {user.dn} has no {bind_property} attribute"
            raise LDAPBindError(msg)
        try:
            await self._verifier.verify(str(bind_dn), password)
        except LDAPBindError as e:
            logger.debug("Password verification failed", error=str(e))
            raise

        user = await self._group_resolver.resolve(user)
        if self._cache is not None:
            await self._cache.store(username, password, user)
        logger.debug("Authenticated user", ldap_dn=user.dn)
        return user

    async def close(self) -> None:
        """Close the connection to LDAP.

        Authentications already in progress are neither waited for nor
        cancelled, and the authenticator should not be used afterwards.
        A privileged bind that is in progress is not interrupted.

        Raises
        ------
        LDAPConnectionError
            Raised if the connection could not be closed cleanly.
        """
        await self._ldap.close()

    def _handle_error(self, error: Exception) -> None:
        """Notify handlers of a connection-level error."""
        self._logger.debug("LDAP emitted error", error=str(error))
        for handler in list(self._error_handlers):
            handler(error)
