"""`stackgen serve`: run the portal logout endpoints."""

import click
import uvicorn


@click.command("serve")
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=3000, type=int, help="Bind port")
def serve_command(host, port):
    """Serve /auth/logout using settings from the environment."""
    uvicorn.run("stackgen.main:create_app", factory=True, host=host, port=port, log_config=None)
