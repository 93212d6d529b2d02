"""Data models for ldapauth."""
