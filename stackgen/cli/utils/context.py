"""Shared access to the services configured on the click context."""

import click

from stackgen.services.config_service import ConfigService


def get_config_service(ctx: click.Context) -> ConfigService:
    return ConfigService(ctx.obj["project_root"], ctx.obj["stack"])
