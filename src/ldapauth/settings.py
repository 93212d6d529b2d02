"""Settings for the ldapauth command-line interface.

These come only from the environment. The authenticator configuration itself
is read from a YAML file, whose path is one of these settings.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from safir.logging import LogLevel, Profile, configure_logging

from .constants import CONFIG_PATH

__all__ = ["CLISettings"]


class CLISettings(BaseSettings):
    """Environment settings for the command-line interface."""

    model_config = SettingsConfigDict(env_prefix="LDAPAUTH_")

    config_path: Path = Field(
        Path(CONFIG_PATH),
        title="Path to configuration file",
    )

    bind_credentials: SecretStr | None = Field(
        None,
        title="Privileged bind password",
        description=(
            "If set, overrides the bind password in the configuration file,"
            " so that it need not be stored there"
        ),
    )

    log_level: LogLevel = Field(LogLevel.WARNING, title="Log level")

    profile: Profile = Field(Profile.development, title="Logging profile")

    def configure_logging(self) -> None:
        """Configure logging based on these settings."""
        configure_logging(
            name="ldapauth", profile=self.profile, log_level=self.log_level
        )
