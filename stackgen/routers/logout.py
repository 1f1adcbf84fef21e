# stackgen/routers/logout.py

import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Query
from fastapi.responses import RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from stackgen.lib.dependencies import get_logout_coordinator
from stackgen.services.logout_service import LogoutCoordinator

router = APIRouter(prefix="/auth", tags=["Logout"])

# Cookie paths as set at login
COOKIE_PATHS = {"oauth_state": "/auth"}


@router.get("/logout", summary="Logout cascade hop")
def logout(
    service_id: Optional[str] = Query(None, alias="serviceId"),
    id_token: Optional[str] = Cookie(None),
    coordinator: LogoutCoordinator = Depends(get_logout_coordinator),
):
    """
    Clears portal cookies and sends the browser to the next sidecar sign-out,
    or to Keycloak end-session once every reachable sidecar has been visited.

    Args:
        service_id (str): Service that just signed out and redirected back.
        id_token (str): Portal id_token cookie, used as the end-session hint.

    Returns:
        RedirectResponse: Top-level navigation to the next hop.
    """
    step = coordinator.step(service_id, id_token)
    settings = coordinator.settings

    response = RedirectResponse(step.redirect_url, status_code=HTTP_303_SEE_OTHER)
    for name in step.clear_cookies:
        response.delete_cookie(
            name,
            path=COOKIE_PATHS.get(name, "/"),
            domain=settings.cookie_domain,
            secure=settings.cookie_secure,
            httponly=True,
            samesite="lax",
        )
    return response


@router.get("/logout/complete", summary="Logout landing")
def logout_complete():
    logging.getLogger(__name__).info("Logout complete", extra={"event": "logout_complete"})
    return RedirectResponse("/", status_code=HTTP_303_SEE_OTHER)
