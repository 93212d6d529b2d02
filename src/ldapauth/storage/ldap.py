"""LDAP storage layer for ldapauth."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any

import bonsai
from bonsai import LDAPClient, LDAPSearchScope
from structlog.stdlib import BoundLogger

from ..config import LDAPAuthConfig
from ..exceptions import LDAPBindError, LDAPConnectionError, LDAPSearchError
from ..models.enums import SearchScope
from ..models.ldap import LDAPEntry

ErrorHandler = Callable[[Exception], None]
"""Callback invoked with connection-level errors."""

_SCOPES = {
    SearchScope.base: LDAPSearchScope.BASE,
    SearchScope.one: LDAPSearchScope.ONELEVEL,
    SearchScope.sub: LDAPSearchScope.SUB,
}

__all__ = ["ErrorHandler", "LDAPBindVerifier", "LDAPStorage"]


def _to_entry(result: Mapping[str, Any], *, include_raw: bool) -> LDAPEntry:
    """Convert a search result from bonsai to an `LDAPEntry`."""
    dn = str(result["dn"])
    attributes = {
        k: list(v) for k, v in result.items() if k.lower() != "dn"
    }
    raw = None
    if include_raw:
        raw = {
            k: [v if isinstance(v, bytes) else str(v).encode() for v in vs]
            for k, vs in attributes.items()
        }
    return LDAPEntry(dn=dn, attributes=attributes, raw=raw)


class LDAPStorage:
    """LDAP storage layer.

    Holds the privileged connection, which is opened and bound lazily on
    first use and then shared by every search. Whether that connection is
    currently bound is shared state across concurrent authentications, so it
    is only changed with the bind lock held, through `mark_unbound`, or
    through `report_connection_error`.

    A connection error only invalidates the connection it was seen on. Many
    searches may be waiting on a connection when it drops, and by the time
    the later ones report their errors a new connection may already be in
    use by other searches.

    Parameters
    ----------
    config
        Authenticator configuration.
    client
        Client for the privileged connection, with its credentials already
        set if the bind is not anonymous.
    logger
        Logger for debug messages and errors.
    on_error
        Called with any connection-level error reported to this storage
        layer, after the connection state has been updated.
    """

    def __init__(
        self,
        config: LDAPAuthConfig,
        client: LDAPClient,
        logger: BoundLogger,
        *,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._logger = logger.bind(ldap_url=str(config.url))
        self._on_error = on_error
        self._conn: Any = None
        self._bound = False
        self._lock = asyncio.Lock()

        # Searches in progress per connection, and replaced connections to
        # close once their last search finishes.
        self._in_use: Counter[Any] = Counter()
        self._retired: set[Any] = set()

    @property
    def bound(self) -> bool:
        """Whether the privileged connection is currently bound."""
        return self._bound

    async def ensure_bound(self) -> None:
        """Ensure the privileged connection is open and bound.

        Does nothing if the connection is already bound. Otherwise opens a
        new connection, which binds with the configured credentials, or
        anonymously if none are configured. A previous connection that was
        marked unbound but not closed is closed once no search is using it.

        Raises
        ------
        LDAPBindError
            Raised if the LDAP server rejected the bind.
        LDAPConnectionError
            Raised if the connection to the LDAP server failed.
        """
        if self._bound:
            return
        async with self._lock:
            if self._bound:
                return
            logger = self._logger.bind(ldap_bind_dn=self._config.bind_dn)
            logger.debug("Binding privileged LDAP connection")
            try:
                conn = await self._client.connect(
                    is_async=True, timeout=self._config.connect_timeout
                )
            except (bonsai.ConnectionError, asyncio.TimeoutError) as e:
                logger.debug("Cannot connect to LDAP", error=str(e))
                self.report_connection_error(e)
                msg = f"Cannot connect to LDAP server: {e!s}"
                raise LDAPConnectionError(msg) from e
            except bonsai.LDAPError as e:
                logger.debug("LDAP bind failed", error=str(e))
                raise LDAPBindError(f"LDAP bind failed: {e!s}") from e
            old, self._conn = self._conn, conn
            self._bound = True
            if old is not None:
                self._retire(old)

    def mark_unbound(self) -> None:
        """Force the next search to open and bind a new connection.

        The current connection is not closed, since it has not been seen to
        fail and searches may still be using it. It is closed after it has
        been replaced and its last search has finished.
        """
        self._bound = False

    def report_connection_error(
        self, error: Exception, conn: Any = None
    ) -> None:
        """Handle a connection-level error.

        Parameters
        ----------
        error
            The error, which is passed on to the error handler.
        conn
            The connection on which the error was seen. If it is the current
            privileged connection, that connection is discarded and closed.
            If it was already replaced, the current connection is left alone.
            If not given, the error came from some other connection to the
            same server, and the privileged connection is only marked
            unbound.
        """
        self._logger.debug("LDAP connection error", error=str(error))
        if conn is None:
            self.mark_unbound()
        elif conn is self._conn:
            self._bound = False
            self._conn = None
            self._retired.discard(conn)
            conn.close()
        if self._on_error:
            self._on_error(error)

    async def search(
        self,
        base: str,
        filter_exp: str,
        scope: SearchScope,
        attributes: list[str] | None = None,
    ) -> list[LDAPEntry]:
        """Perform an LDAP search using the privileged connection.

        Parameters
        ----------
        base
            Base DN of the search.
        filter_exp
            Search filter.
        scope
            Scope of the search.
        attributes
            Attributes to retrieve, or `None` to retrieve all of them.

        Returns
        -------
        list of LDAPEntry
            Matching entries in the order returned by the server.

        Raises
        ------
        LDAPBindError
            Raised if the privileged connection could not be bound.
        LDAPConnectionError
            Raised if the privileged connection could not be opened.
        LDAPSearchError
            Raised if the search failed.
        """
        await self.ensure_bound()
        conn = self._conn
        logger = self._logger.bind(
            ldap_attrs=attributes,
            ldap_base=base,
            ldap_scope=scope.value,
            ldap_search=filter_exp,
        )
        logger.debug("Querying LDAP")
        self._in_use[conn] += 1
        try:
            results = await conn.search(
                base=base,
                scope=_SCOPES[scope],
                filter_exp=filter_exp,
                attrlist=attributes,
                timeout=self._config.timeout,
            )
        except (bonsai.ConnectionError, asyncio.TimeoutError) as e:
            logger.exception("Cannot query LDAP", error=str(e))
            self.report_connection_error(e, conn)
            raise LDAPSearchError(f"Error querying LDAP: {e!s}") from e
        except bonsai.LDAPError as e:
            logger.exception("Cannot query LDAP", error=str(e))
            raise LDAPSearchError(f"Error querying LDAP: {e!s}") from e
        finally:
            self._release(conn)
        include_raw = self._config.include_raw
        entries = [_to_entry(r, include_raw=include_raw) for r in results]
        logger.debug("LDAP search results", ldap_results=len(entries))
        return entries

    async def close(self) -> None:
        """Close the privileged connection, if it is open.

        Connections replaced after being marked unbound are closed as well,
        even if searches are still using them. A bind that is in progress
        when this is called is not interrupted.

        Raises
        ------
        LDAPConnectionError
            Raised if a connection could not be closed cleanly. All
            connections are still closed first.
        """
        self._bound = False
        conns = list(self._retired)
        if self._conn is not None:
            conns.append(self._conn)
        self._conn = None
        self._retired.clear()
        error = None
        for conn in conns:
            try:
                conn.close()
            except bonsai.LDAPError as e:
                error = e
        if error:
            msg = f"Cannot close LDAP connection: {error!s}"
            raise LDAPConnectionError(msg) from error

    def _release(self, conn: Any) -> None:
        """Note the end of a search, closing the connection if retired."""
        self._in_use[conn] -= 1
        if self._in_use[conn] > 0:
            return
        del self._in_use[conn]
        if conn in self._retired:
            self._retired.discard(conn)
            conn.close()

    def _retire(self, conn: Any) -> None:
        """Close a replaced connection once no search is using it."""
        if self._in_use[conn] > 0:
            self._retired.add(conn)
        else:
            conn.close()


class LDAPBindVerifier:
    """Verify passwords by binding to the LDAP server.

    bonsai binds when a connection is opened and cannot rebind an open
    connection, so each verification opens its own short-lived connection.
    This also means concurrent verifications never see each other's bind
    results.

    Parameters
    ----------
    config
        Authenticator configuration.
    client_factory
        Creates a client that will bind as the given user and password.
    logger
        Logger for debug messages and errors.
    on_error
        Called with any connection-level error seen while verifying.
    """

    def __init__(
        self,
        config: LDAPAuthConfig,
        client_factory: Callable[..., LDAPClient],
        logger: BoundLogger,
        *,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._logger = logger.bind(ldap_url=str(config.url))
        self._on_error = on_error

    async def verify(self, dn: str, password: str) -> None:
        """Check a password by binding as a user.

        Parameters
        ----------
        dn
            Identity to bind as.
        password
            Password to check.

        Raises
        ------
        LDAPBindError
            Raised if the bind failed.
        LDAPConnectionError
            Raised if the connection to the LDAP server failed.
        """
        logger = self._logger.bind(ldap_bind_dn=dn)
        client = self._client_factory(user=dn, password=password)
        try:
            conn = await client.connect(
                is_async=True, timeout=self._config.connect_timeout
            )
        except (bonsai.ConnectionError, asyncio.TimeoutError) as e:
            logger.debug("Cannot connect to LDAP", error=str(e))
            if self._on_error:
                self._on_error(e)
            msg = f"Cannot connect to LDAP server: {e!s}"
            raise LDAPConnectionError(msg) from e
        except bonsai.LDAPError as e:
            logger.debug("LDAP bind failed", error=str(e))
            raise LDAPBindError(f"LDAP bind failed: {e!s}") from e
        conn.close()
        logger.debug("LDAP bind succeeded")
