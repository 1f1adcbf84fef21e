"""`stackgen init`: scaffold a stack file."""

import click

from stackgen.cli.utils.context import get_config_service


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init_command(ctx, force):
    """Write an example config.<stack>.yaml."""
    path = get_config_service(ctx).init(force=force)
    click.echo(f"Config: {path}")
