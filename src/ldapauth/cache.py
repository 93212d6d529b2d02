"""Cache of successful authentications.

Authenticating a user costs at least two LDAP round trips, a search and a
bind, so successful authentications may be cached for a short time. The
cache never holds the password itself, only a salted scrypt hash of it, and
a cached user is only returned if the supplied password verifies against
that hash.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Callable
from copy import deepcopy

from cachetools import FIFOCache
from cryptography.exceptions import InvalidKey, UnsupportedAlgorithm
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .constants import (
    CACHE_LIFETIME,
    CACHE_SIZE,
    SCRYPT_LENGTH,
    SCRYPT_N,
    SCRYPT_P,
    SCRYPT_R,
    SCRYPT_SALT_LENGTH,
)
from .exceptions import CredentialHashError
from .models.ldap import CachedCredential, LDAPUser

__all__ = ["CredentialCache"]


class CredentialCache:
    """A bounded cache of verified credentials with a fixed lifetime.

    When the cache is full, the entry that was stored longest ago is evicted,
    regardless of how recently it was read. Expired entries are treated as
    absent and removed when they are next looked up.

    Parameters
    ----------
    maxsize
        Maximum number of entries.
    lifetime
        Lifetime of each entry in seconds.
    timer
        Clock used for expiration, for testing.

    Notes
    -----
    The salt is generated once per cache, which in practice means once per
    authenticator. It is not secret. Its purpose is to ensure that the same
    password does not produce the same hash in different processes.
    """

    def __init__(
        self,
        maxsize: int = CACHE_SIZE,
        lifetime: float = CACHE_LIFETIME,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._maxsize = maxsize
        self._lifetime = lifetime
        self._timer = timer
        self._salt = os.urandom(SCRYPT_SALT_LENGTH)
        self._cache: FIFOCache[str, CachedCredential]
        self.initialize()

    def __len__(self) -> int:
        return len(self._cache)

    def initialize(self) -> None:
        """Initialize the cache."""
        self._cache = FIFOCache(self._maxsize)

    def clear(self) -> None:
        """Invalidate the cache.

        Used primarily for testing.
        """
        self.initialize()

    def get(self, username: str) -> CachedCredential | None:
        """Retrieve the cached credential for a user.

        Parameters
        ----------
        username
            Username as given to the authenticator.

        Returns
        -------
        CachedCredential or None
            The cached credential, or `None` if there is none or it has
            expired.
        """
        entry = self._cache.get(username)
        if entry is None:
            return None
        if entry.expires <= self._timer():
            del self._cache[username]
            return None
        return entry

    def set(self, username: str, entry: CachedCredential) -> None:
        """Store a credential, replacing any existing one for that user.

        Replacing an entry makes it the newest entry in the cache.

        Parameters
        ----------
        username
            Username as given to the authenticator.
        entry
            Credential to store.
        """
        self._cache.pop(username, None)
        self._cache[username] = entry

    async def check(self, username: str, password: str) -> LDAPUser | None:
        """Look up a user, verifying the password against the cache.

        Parameters
        ----------
        username
            Username as given to the authenticator.
        password
            Password to check.

        Returns
        -------
        LDAPUser or None
            A copy of the cached user if there is an unexpired entry for this
            user and the password matches it, otherwise `None`.

        Raises
        ------
        CredentialHashError
            Raised if the password could not be hashed.
        """
        entry = self.get(username)
        if not entry:
            return None
        matches = await asyncio.to_thread(
            self._verify, password, entry.password_hash
        )
        return deepcopy(entry.user) if matches else None

    async def store(
        self, username: str, password: str, user: LDAPUser
    ) -> None:
        """Cache a successful authentication.

        Parameters
        ----------
        username
            Username as given to the authenticator.
        password
            Password that was verified.
        user
            User record returned by the authentication. A copy is stored.

        Raises
        ------
        CredentialHashError
            Raised if the password could not be hashed.
        """
        password_hash = await asyncio.to_thread(self._hash, password)
        entry = CachedCredential(
            password_hash=password_hash,
            user=deepcopy(user),
            expires=self._timer() + self._lifetime,
        )
        self.set(username, entry)

    def _hash(self, password: str) -> bytes:
        try:
            return self._kdf().derive(password.encode())
        except (UnsupportedAlgorithm, ValueError, MemoryError) as e:
            raise CredentialHashError(f"Cannot hash password: {e!s}") from e

    def _verify(self, password: str, password_hash: bytes) -> bool:
        try:
            self._kdf().verify(password.encode(), password_hash)
        except InvalidKey:
            return False
        except (UnsupportedAlgorithm, ValueError, MemoryError) as e:
            raise CredentialHashError(f"Cannot hash password: {e!s}") from e
        return True

    def _kdf(self) -> Scrypt:
        # Scrypt objects may only be used once.
        return Scrypt(
            salt=self._salt,
            length=SCRYPT_LENGTH,
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
        )
