# stackgen/lib/dependencies.py

from fastapi import HTTPException, Request

from stackgen.lib.config import PortalSettings
from stackgen.services.logout_service import LogoutCoordinator


def get_logout_coordinator(request: Request) -> LogoutCoordinator:
    """Retrieve the logout coordinator built at startup.

    Raises:
        HTTPException: 503 if the descriptor has not been loaded
    """
    coordinator = getattr(request.app.state, "logout_coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Logout is not configured")
    return coordinator


def get_portal_settings(request: Request) -> PortalSettings:
    return get_logout_coordinator(request).settings
