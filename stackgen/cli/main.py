#!/usr/bin/env python3
"""Main entry point for the stackgen CLI."""

import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from stackgen.cli.commands import compiler, init, logout, secrets, serve, validate
from stackgen.cli.utils.error_handling import handle_cli_error
from stackgen.lib.logging_config import setup_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug output")
@click.option("--stack", "-s", default=None, help="Stack name (env: STACKGEN_STACK)")
@click.option(
    "--project-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding config.<stack>.yaml (env: STACKGEN_PROJECT_ROOT)",
)
@click.pass_context
def cli(ctx, debug, stack, project_root):
    """Deployment configuration compiler."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["stack"] = stack or os.getenv("STACKGEN_STACK", "local")
    ctx.obj["project_root"] = project_root or Path(os.getenv("STACKGEN_PROJECT_ROOT", "."))

    if debug:
        setup_logging(debug=True, stack=ctx.obj["stack"])
        logger.debug("Debug mode enabled")


cli.add_command(init.init_command)
cli.add_command(validate.validate_command)
cli.add_command(secrets.secrets_group)
cli.add_command(compiler.compile_command)
cli.add_command(logout.logout_plan_command)
cli.add_command(serve.serve_command)


def main():
    """Main entry point."""
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        handle_cli_error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
