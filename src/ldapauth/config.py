"""Configuration for ldapauth.

The authenticator is configured with a single `LDAPAuthConfig` model. Keys
may be given in camel case, matching the option names historically used for
this kind of authenticator (``searchFilter``, ``bindDN``, and so forth), or
by their snake-case field names. Historical aliases for the privileged bind
identity and secret are accepted and resolved when the model is validated, so
no code past construction needs to know about them.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Self

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    UrlConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import Url

from .models.enums import SearchScope, TLSCertPolicy
from .models.ldap import LDAPUser

LdapDsn = Annotated[
    Url, UrlConstraints(allowed_schemes=["ldap", "ldaps"], host_required=True)
]
"""DSN for connecting to an LDAP server."""

GroupFilterFunction = Callable[[LDAPUser], str]
"""Function that builds the group search filter for a user."""

__all__ = [
    "CamelCaseModel",
    "GroupFilterFunction",
    "LDAPAuthConfig",
    "LdapDsn",
]


class CamelCaseModel(BaseModel):
    """Base class for Pydantic models supporting camel-case.

    This base class also forbids all extra attributes and makes the model
    immutable.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )


class LDAPAuthConfig(CamelCaseModel):
    """Configuration for LDAP authentication.

    Unknown keys are rejected. This includes the connection options
    ``reconnect``, ``queueDisable``, ``idleTimeout``, and ``tlsOptions``
    accepted by some other LDAP authenticators, which have no equivalent in
    bonsai. Timeouts are given in seconds, not milliseconds.
    """

    url: LdapDsn = Field(
        ...,
        title="LDAP server URL",
        description="URL of the LDAP server, using ``ldap`` or ``ldaps``",
    )

    bind_dn: str | None = Field(
        None,
        title="Privileged bind DN",
        description=(
            "DN of the user to bind as with simple bind when searching for"
            " users and groups. If not set, searches use an anonymous bind."
        ),
        validation_alias=AliasChoices("bindDN", "bindDn", "adminDn"),
    )

    bind_credentials: SecretStr | None = Field(
        None,
        title="Privileged bind password",
        description=(
            "Password for the privileged bind DN. Required if ``bindDN`` is"
            " set, since an empty password would make the bind anonymous."
        ),
        validation_alias=AliasChoices(
            "bindCredentials", "Credentials", "adminPassword"
        ),
    )

    search_base: str = Field(
        "",
        title="Base DN for user searches",
        description="Base DN from which to search for users by username",
        examples=["ou=users,dc=example,dc=com"],
    )

    search_filter: str = Field(
        ...,
        title="User search filter",
        description=(
            "LDAP search filter used to find a user by username. Every"
            " occurrence of the literal ``{{username}}`` is replaced with the"
            " escaped username."
        ),
        examples=["(uid={{username}})"],
        min_length=1,
    )

    search_scope: SearchScope = Field(
        SearchScope.sub,
        title="Scope of user searches",
    )

    search_attributes: list[str] | None = Field(
        None,
        title="Attributes of user entries to retrieve",
        description="If not set, all attributes are retrieved",
    )

    bind_property: str = Field(
        "dn",
        title="Bind property",
        description=(
            "Attribute of the user entry whose value is used as the bind DN"
            " when verifying the password"
        ),
    )

    group_search_base: str | None = Field(
        None,
        title="Base DN for group searches",
        description=(
            "Group searches are only done if both this and"
            " ``groupSearchFilter`` are set"
        ),
    )

    group_search_filter: str | GroupFilterFunction | None = Field(
        None,
        title="Group search filter",
        description=(
            "LDAP search filter for the groups of a user. Every occurrence of"
            " the literal ``{{dn}}`` is replaced with the escaped value of"
            " ``groupDnProperty`` from the user entry. May instead be a"
            " function that takes the user and returns the filter."
        ),
        examples=["(member={{dn}})"],
    )

    group_search_scope: SearchScope = Field(
        SearchScope.sub,
        title="Scope of group searches",
    )

    group_search_attributes: list[str] | None = Field(
        None,
        title="Attributes of group entries to retrieve",
        description="If not set, all attributes are retrieved",
    )

    group_dn_property: str = Field(
        "dn",
        title="Group DN property",
        description=(
            "Attribute of the user entry substituted for ``{{dn}}`` in the"
            " group search filter"
        ),
    )

    include_raw: bool = Field(
        False,
        title="Include raw attribute values",
        description=(
            "If set, entries also carry the byte values of their attributes,"
            " which is useful for binary attributes"
        ),
    )

    cache: bool = Field(
        False,
        title="Cache successful authentications",
        description=(
            "If set, successful authentications are cached in memory, as a"
            " salted hash of the password, for a short time"
        ),
    )

    timeout: float | None = Field(
        None,
        title="LDAP operation timeout",
        description=(
            "Timeout in seconds (not milliseconds) for each LDAP search"
        ),
        gt=0,
    )

    connect_timeout: float | None = Field(
        None,
        title="LDAP connection timeout",
        description=(
            "Timeout in seconds (not milliseconds) for opening and binding"
            " connections"
        ),
        gt=0,
    )

    starttls: bool = Field(
        False,
        title="Use STARTTLS",
        description="Whether to upgrade ``ldap`` connections with STARTTLS",
    )

    tls_ca_cert_file: Path | None = Field(
        None, title="CA certificate file for TLS"
    )

    tls_ca_cert_dir: Path | None = Field(
        None, title="Directory of CA certificates for TLS"
    )

    tls_cert_policy: TLSCertPolicy | None = Field(
        None,
        title="TLS certificate checking policy",
        description="If not set, the LDAP library default is used",
    )

    raw_attributes: list[str] = Field(
        [],
        title="Binary attributes",
        description=(
            "Attributes the LDAP client should return as bytes rather than"
            " decoding them as strings"
        ),
    )

    chase_referrals: bool | None = Field(
        None,
        title="Chase referrals",
        description="If not set, the LDAP library default is used",
    )

    @model_validator(mode="after")
    def _validate_credentials(self) -> Self:
        if self.bind_dn and not self.bind_credentials:
            raise ValueError("bindCredentials required if bindDN is set")
        return self

    @classmethod
    def from_file(cls, path: Path, **overrides: object) -> Self:
        """Construct a configuration from a YAML file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.
        **overrides
            Additional settings, which take precedence over the file.

        Returns
        -------
        LDAPAuthConfig
            The corresponding configuration.
        """
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
        data.update(overrides)
        return cls.model_validate(data)

    @property
    def groups_enabled(self) -> bool:
        """Whether group resolution is configured."""
        return bool(self.group_search_base and self.group_search_filter)

    @property
    def user_attributes(self) -> list[str] | None:
        """Attributes to request in the user search.

        The bind property and group DN property are added to any configured
        attribute list so that the user entry always contains them.
        """
        if self.search_attributes is None:
            return None
        attributes = list(self.search_attributes)
        for attr in (self.bind_property, self.group_dn_property):
            if attr.lower() != "dn" and attr not in attributes:
                attributes.append(attr)
        return attributes
