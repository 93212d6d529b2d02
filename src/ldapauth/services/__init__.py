"""Service layer for ldapauth."""
