"""`stackgen compile`: generate every artifact for a stack."""

from pathlib import Path

import click

from stackgen.cli.utils.context import get_config_service
from stackgen.services.compiler_service import CompilerService
from stackgen.services.credentials_service import CredentialsService


@click.command("compile")
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (defaults to generated/<stack>)",
)
@click.pass_context
def compile_command(ctx, output_dir):
    """Validate the declaration and write routing, realm, sidecar and descriptor files."""
    config_service = get_config_service(ctx)
    compiler = CompilerService(config_service.load())

    secrets = CredentialsService(config_service.secrets_file).ensure(
        compiler.protected_service_ids()
    )
    artifacts = compiler.compile(secrets)
    paths = compiler.write(artifacts, output_dir or config_service.output_dir)

    for name, path in paths.items():
        click.echo(f"{name}: {path}")
