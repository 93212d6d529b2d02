"""Command-line interface for ldapauth."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

import click
import structlog
from safir.asyncio import run_with_asyncio
from safir.click import display_help

from .authenticator import LDAPAuthenticator
from .config import LDAPAuthConfig
from .exceptions import LDAPAuthError
from .settings import CLISettings

__all__ = ["authenticate", "help", "main"]


def _json_default(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode()
    return str(value)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s")
def main() -> None:
    """Command-line interface for ldapauth."""


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)


@main.command()
@click.argument("username")
@click.password_option(
    "--password", confirmation_prompt=False, help="Password of the user."
)
@click.option(
    "--config-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Authenticator configuration file.",
)
@run_with_asyncio
async def authenticate(
    *, username: str, password: str, config_path: Path | None
) -> None:
    """Authenticate a user and print the user entry as JSON."""
    settings = CLISettings()
    settings.configure_logging()
    logger = structlog.get_logger("ldapauth")
    overrides = {}
    if settings.bind_credentials:
        overrides["bindCredentials"] = settings.bind_credentials
    config = LDAPAuthConfig.from_file(
        config_path or settings.config_path, **overrides
    )

    async with LDAPAuthenticator(config, logger=logger) as authenticator:
        authenticator.add_error_handler(
            lambda e: logger.warning("LDAP connection error", error=str(e))
        )
        try:
            user = await authenticator.authenticate(username, password)
        except LDAPAuthError as e:
            raise click.ClickException(str(e)) from e
    click.echo(json.dumps(user.to_dict(), indent=2, default=_json_default))
