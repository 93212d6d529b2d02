"""Data models for LDAP."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["CachedCredential", "LDAPEntry", "LDAPUser"]


@dataclass
class LDAPEntry:
    """An entry returned by an LDAP search."""

    dn: str
    """Distinguished name of the entry."""

    attributes: dict[str, list[Any]] = field(default_factory=dict)
    """Attribute values, as decoded by the LDAP client."""

    raw: dict[str, list[bytes]] | None = None
    """Byte values of the attributes, if raw values were requested."""

    def get(self, attr: str) -> Any | None:
        """Return the first value of an attribute.

        The pseudo-attribute ``dn`` returns the distinguished name of the
        entry. Attribute names are matched case-insensitively, as in LDAP.

        Parameters
        ----------
        attr
            Name of the attribute.

        Returns
        -------
        Any or None
            First value of the attribute, or `None` if the entry does not
            have that attribute.
        """
        if attr.lower() == "dn":
            return self.dn
        for name, values in self.attributes.items():
            if name.lower() == attr.lower():
                return values[0] if values else None
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the conventional mapping form of an LDAP entry.

        Single-valued attributes are unwrapped. The raw values, if present,
        are added under the ``_raw`` key.
        """
        result: dict[str, Any] = {"dn": self.dn}
        for name, values in self.attributes.items():
            result[name] = values[0] if len(values) == 1 else list(values)
        if self.raw is not None:
            result["_raw"] = {k: list(v) for k, v in self.raw.items()}
        return result


@dataclass
class LDAPUser(LDAPEntry):
    """A user entry found by the user search."""

    groups: list[LDAPEntry] | None = None
    """Group entries of the user, if group resolution is configured."""

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.groups is not None:
            result["_groups"] = [g.to_dict() for g in self.groups]
        return result


@dataclass
class CachedCredential:
    """A successful authentication stored in the credential cache."""

    password_hash: bytes
    """Salted scrypt hash of the password that was verified."""

    user: LDAPUser
    """User record produced by the authentication."""

    expires: float
    """Expiration time on the clock of the cache."""
