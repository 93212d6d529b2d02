"""Storage layer for ldapauth."""
