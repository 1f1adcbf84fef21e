"""`stackgen logout-plan`: dry-run the logout cascade for a stack."""

from typing import Iterable

import click

from stackgen.cli.utils.context import get_config_service
from stackgen.lib.config import PortalSettings
from stackgen.services.compiler_service import CompilerService
from stackgen.services.descriptor_service import DescriptorService
from stackgen.services.logout_service import LogoutCascade, LogoutCoordinator


class StaticProber:
    """Reports every service reachable except the ones listed."""

    def __init__(self, unreachable: Iterable[str]) -> None:
        self.unreachable = set(unreachable)

    def is_reachable(self, service_url: str) -> bool:
        return not any(f"://{host}." in service_url for host in self.unreachable)


@click.command("logout-plan")
@click.option("--unreachable", multiple=True, help="Host to treat as unreachable")
@click.pass_context
def logout_plan_command(ctx, unreachable):
    """Print the navigations a browser would follow on logout."""
    stack_file = get_config_service(ctx).load()
    config = CompilerService(stack_file).resolve()
    descriptor = DescriptorService(stack_file.stack).generate(config)

    coordinator = LogoutCoordinator(
        PortalSettings.from_stack(stack_file.stack, traefik_internal_url="http://traefik"),
        descriptor,
        prober=StaticProber(unreachable),
    )
    trace = LogoutCascade(coordinator).run()

    for url in trace.navigations:
        click.echo(f"navigate: {url}")
    for service_id in trace.skipped:
        click.echo(f"skip: {service_id}")
    click.echo(f"end-session: {trace.end_session_url}")
