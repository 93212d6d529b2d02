"""Enums used in ldapauth models."""

from __future__ import annotations

from enum import Enum

__all__ = ["SearchScope", "TLSCertPolicy"]


class SearchScope(Enum):
    """Scope of an LDAP search."""

    base = "base"
    """Only the entry named by the search base."""

    one = "one"
    """Immediate children of the search base."""

    sub = "sub"
    """The entire subtree rooted at the search base."""


class TLSCertPolicy(Enum):
    """How to check the certificate of the LDAP server.

    The values match the policies accepted by
    `bonsai.LDAPClient.set_cert_policy`.
    """

    never = "never"
    allow = "allow"
    try_ = "try"
    demand = "demand"
    hard = "hard"
