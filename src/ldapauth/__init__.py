"""Authenticate users against an LDAP directory."""

from .authenticator import LDAPAuthenticator
from .config import LDAPAuthConfig
from .models.ldap import LDAPEntry, LDAPUser

__all__ = ["LDAPAuthConfig", "LDAPAuthenticator", "LDAPEntry", "LDAPUser"]
