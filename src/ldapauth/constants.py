"""Constants for ldapauth."""

__all__ = [
    "CACHE_LIFETIME",
    "CACHE_SIZE",
    "CONFIG_PATH",
    "DN_PLACEHOLDER",
    "SCRYPT_LENGTH",
    "SCRYPT_N",
    "SCRYPT_P",
    "SCRYPT_R",
    "SCRYPT_SALT_LENGTH",
    "USERNAME_PLACEHOLDER",
]

CONFIG_PATH = "/etc/ldapauth/ldapauth.yaml"
"""Default configuration path for the command-line interface."""

USERNAME_PLACEHOLDER = "{{username}}"
"""Literal in the user search filter replaced by the escaped username."""

DN_PLACEHOLDER = "{{dn}}"
"""Literal in the group search filter replaced by the user's DN property."""

# The following constants define the credential cache.

CACHE_SIZE = 100
"""Maximum number of cached credentials."""

CACHE_LIFETIME = 5 * 60
"""Lifetime of a cached credential in seconds."""

# Parameters for the scrypt hash of cached passwords.  These are the
# interactive-login parameters recommended in the scrypt paper.

SCRYPT_N = 2**14
"""CPU/memory cost parameter."""

SCRYPT_R = 8
"""Block size parameter."""

SCRYPT_P = 1
"""Parallelization parameter."""

SCRYPT_LENGTH = 32
"""Length of the derived hash in bytes."""

SCRYPT_SALT_LENGTH = 16
"""Length of the per-cache random salt in bytes."""
