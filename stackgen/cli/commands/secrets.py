"""`stackgen secrets`: create or rotate generated secrets."""

import click

from stackgen.cli.utils.context import get_config_service
from stackgen.services.compiler_service import CompilerService
from stackgen.services.credentials_service import CredentialsService


@click.group("secrets")
def secrets_group():
    """Manage generated client and cookie secrets."""


@secrets_group.command("ensure")
@click.pass_context
def ensure_command(ctx):
    """Generate any missing secret; existing ones are kept."""
    config_service = get_config_service(ctx)
    service_ids = CompilerService(config_service.load()).protected_service_ids()
    bundle = CredentialsService(config_service.secrets_file).ensure(service_ids)
    click.echo(f"Secrets for {len(bundle.client_secrets)} services in {config_service.secrets_file}")


@secrets_group.command("rotate")
@click.option("--service", "service_id", default=None, help="Rotate only this service")
@click.pass_context
def rotate_command(ctx, service_id):
    """Regenerate secrets; compile again to apply them."""
    config_service = get_config_service(ctx)
    CredentialsService(config_service.secrets_file).rotate(service_id)
    click.echo(f"Rotated secrets for {service_id or 'all services'}")
