"""`stackgen validate`: report every declaration problem at once."""

import sys

import click

from stackgen.cli.utils.context import get_config_service
from stackgen.services.validation_service import ValidationService, validate_user_passwords


@click.command("validate")
@click.pass_context
def validate_command(ctx):
    """Validate the stack declaration without generating anything."""
    stack_file = get_config_service(ctx).load()
    result = ValidationService().validate(stack_file.stack.environment, stack_file.declaration)
    errors = list(result.errors) + validate_user_passwords(stack_file.declaration)

    if errors:
        for issue in errors:
            click.secho(f"  - [{issue.code.value}] {issue.message} (at {issue.path})", fg="red")
        click.echo(f"{len(errors)} problem(s) found")
        sys.exit(1)

    config = result.config
    click.secho(
        f"OK: {len(config.services)} services, {len(config.roles)} roles, {len(config.users)} users",
        fg="green",
    )
