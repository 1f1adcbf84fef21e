"""Error reporting for CLI commands."""

import logging

import click

from stackgen.lib.errors import DeploymentConfigError, StackgenError

logger = logging.getLogger(__name__)


def handle_cli_error(error: Exception) -> None:
    """Print an error for the operator; tracebacks only under --debug."""
    if isinstance(error, DeploymentConfigError):
        click.secho(str(error), fg="red", err=True)
        for issue in error.errors:
            logger.debug(f"{issue.code.value} at {issue.path}")
    elif isinstance(error, StackgenError):
        click.secho(f"Error: {error}", fg="red", err=True)
    else:
        click.secho(f"Unexpected error: {error}", fg="red", err=True)
        logger.debug("Unexpected CLI failure", exc_info=error)
