"""FastAPI application serving the portal logout cascade."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from stackgen.lib.config import PortalSettings
from stackgen.lib.logging_config import setup_logging
from stackgen.routers import health, logout
from stackgen.services.descriptor_service import load_descriptor
from stackgen.services.logout_service import LogoutCoordinator


def build_coordinator(settings: PortalSettings) -> LogoutCoordinator:
    """Load the descriptor named by the settings and build the coordinator."""
    descriptor = load_descriptor(
        json_text=settings.descriptor_json,
        path=Path(settings.descriptor_path) if settings.descriptor_path else None,
    )
    return LogoutCoordinator(settings, descriptor)


def create_app(coordinator: Optional[LogoutCoordinator] = None) -> FastAPI:
    """Create the portal logout app.

    Args:
        coordinator: Prebuilt coordinator; loaded from the environment at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        if getattr(app.state, "logout_coordinator", None) is None:
            try:
                app.state.logout_coordinator = build_coordinator(PortalSettings.from_env())
            except Exception as e:
                logging.error(f"Critical error during application initialization: {e}")
                raise
        logging.info("Logout coordinator ready")
        yield
        logging.info("Application shutdown complete")

    app = FastAPI(title="stackgen portal logout", lifespan=lifespan)
    app.state.logout_coordinator = coordinator

    for router in (health, logout):
        app.include_router(router.router)
        logging.debug(f"Router {router.__name__} included")

    return app
