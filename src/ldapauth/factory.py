"""Create ldapauth components."""

from __future__ import annotations

from bonsai import LDAPClient
from structlog.stdlib import BoundLogger

from .config import LDAPAuthConfig
from .services.groups import (
    GroupResolver,
    LDAPGroupResolver,
    NullGroupResolver,
)
from .storage.ldap import LDAPStorage

__all__ = ["create_group_resolver", "create_ldap_client"]


def create_ldap_client(
    config: LDAPAuthConfig,
    *,
    user: str | None = None,
    password: str | None = None,
) -> LDAPClient:
    """Create a bonsai client for the configured LDAP server.

    Parameters
    ----------
    config
        Authenticator configuration, whose transport settings are applied to
        the client.
    user
        DN to bind as with a simple bind. If `None`, the connection will be
        anonymous.
    password
        Password for the simple bind.

    Returns
    -------
    bonsai.LDAPClient
        The configured client.
    """
    client = LDAPClient(str(config.url), config.starttls)
    if user is not None:
        client.set_credentials("SIMPLE", user=user, password=password)
    if config.tls_ca_cert_file:
        client.set_ca_cert(str(config.tls_ca_cert_file))
    if config.tls_ca_cert_dir:
        client.set_ca_cert_dir(str(config.tls_ca_cert_dir))
    if config.tls_cert_policy:
        client.set_cert_policy(config.tls_cert_policy.value)
    if config.raw_attributes:
        client.set_raw_attributes(config.raw_attributes)
    if config.chase_referrals is not None:
        client.set_server_chase_referrals(config.chase_referrals)
    return client


def create_group_resolver(
    config: LDAPAuthConfig, ldap: LDAPStorage, logger: BoundLogger
) -> GroupResolver:
    """Create the group resolution strategy for a configuration.

    Parameters
    ----------
    config
        Authenticator configuration.
    ldap
        LDAP storage layer used for group searches.
    logger
        Logger to use.

    Returns
    -------
    GroupResolver
        An `LDAPGroupResolver` if both the group search base and filter are
        configured, otherwise a `NullGroupResolver`.
    """
    if not config.groups_enabled:
        return NullGroupResolver()
    return LDAPGroupResolver(config, ldap, logger)
