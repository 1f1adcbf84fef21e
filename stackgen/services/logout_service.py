"""Cross-origin logout cascade.

Each portal hop clears its own cookies, probes the remaining proxy-auth
services in descriptor order, and either sends the browser to the next
reachable sidecar's sign-out endpoint (which redirects back with
`?serviceId=<id>`) or, once the work list is exhausted, to Keycloak's
end-session endpoint.
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import quote, urlsplit

import jwt as pyjwt
import requests
from pydantic import BaseModel, Field

from stackgen.lib.config import PortalSettings
from stackgen.models.descriptor import ServiceEntry, UIDescriptor

logger = logging.getLogger(__name__)

ID_TOKEN_SKEW_SECONDS = 5
LOCAL_COOKIES = ("access_token", "oauth_state")
ID_TOKEN_COOKIE = "id_token"


class CascadeState(str, Enum):
    CLEAR_LOCAL = "clear-local"
    PROBE_NEXT = "probe-next"
    REDIRECT_TO_SERVICE = "redirect-to-service"
    SKIP_SERVICE = "skip-service"
    DONE = "done"


class LogoutStep(BaseModel):
    """
    Outcome of one portal hop.

    Attributes:
        redirect_url (str): Top-level navigation target.
        next_service_id (Optional[str]): Service being signed out, None once done.
        skipped (List[str]): Services found unreachable during this hop.
        clear_cookies (List[str]): Portal cookies to expire on this response.
        states (List[CascadeState]): States traversed, in order.
    """

    redirect_url: str
    next_service_id: Optional[str] = None
    skipped: List[str] = Field(default_factory=list)
    clear_cookies: List[str] = Field(default_factory=list)
    states: List[CascadeState] = Field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.next_service_id is None


class CascadeTrace(BaseModel):
    """A whole cascade as seen by the browser."""

    navigations: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    end_session_url: str = ""


class ServiceProber:
    """Single bounded HEAD request per service; no retries."""

    def __init__(
        self,
        connect_timeout_ms: int,
        request_timeout_ms: int,
        traefik_internal_url: Optional[str] = None,
    ) -> None:
        self.timeout = (connect_timeout_ms / 1000, request_timeout_ms / 1000)
        self.traefik_internal_url = traefik_internal_url

    def is_reachable(self, service_url: str) -> bool:
        """Probe the service base URL, never its sign-out endpoint.

        Any response counts as reachable. Through the internal proxy a 404
        means no router matched the Host header, so the service is down.
        """
        host = urlsplit(service_url).hostname
        if not host:
            logger.warning(f"Cannot probe malformed service URL {service_url}")
            return False

        if self.traefik_internal_url:
            url, headers = self.traefik_internal_url, {"Host": host}
        else:
            url, headers = service_url, {}

        try:
            response = requests.head(url, headers=headers, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as e:
            logger.warning(
                f"Service {service_url} unreachable: {e}",
                extra={"event": "logout_probe_failed"},
            )
            return False

        if self.traefik_internal_url and response.status_code == 404:
            logger.warning(
                f"No route for {host} behind the internal proxy",
                extra={"event": "logout_probe_no_route"},
            )
            return False
        return True


def is_id_token_usable(id_token: Optional[str], now: Optional[float] = None) -> bool:
    """Whether the token can be sent as `id_token_hint`.

    Only `exp` is read; the signature is not checked because Keycloak
    verifies the hint itself.
    """
    if not id_token or not id_token.strip():
        return False
    try:
        claims = pyjwt.decode(id_token, options={"verify_signature": False, "verify_exp": False})
    except pyjwt.InvalidTokenError:
        logger.info("id_token is malformed, using client_id for Keycloak logout")
        return False

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False
    now = time.time() if now is None else now
    if exp < now - ID_TOKEN_SKEW_SECONDS:
        logger.info("id_token expired, using client_id for Keycloak logout")
        return False
    return True


class LogoutCoordinator:
    """Portal-side state machine driven by `GET /auth/logout`."""

    def __init__(
        self,
        settings: PortalSettings,
        descriptor: UIDescriptor,
        prober: Optional[ServiceProber] = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            settings: Portal runtime settings
            descriptor: Descriptor providing the ordered work list
            prober: Reachability prober (built from settings when omitted)
        """
        self.settings = settings
        self.descriptor = descriptor
        self.prober = prober or ServiceProber(
            settings.probe_connect_timeout_ms,
            settings.probe_request_timeout_ms,
            settings.traefik_internal_url,
        )

    @property
    def work_list(self) -> List[ServiceEntry]:
        return self.descriptor.proxy_auth_services()

    @property
    def probes_disabled(self) -> bool:
        # Probing arbitrary descriptor URLs from a production portal is an SSRF vector
        return self.settings.is_production and not self.settings.traefik_internal_url

    def start_index(self, last_service_id: Optional[str]) -> int:
        """Position after the service that just signed out."""
        if last_service_id is None:
            return 0
        for index, service in enumerate(self.work_list):
            if service.id == last_service_id:
                return index + 1
        logger.warning(
            f"Unknown serviceId {last_service_id}; restarting logout from first service",
            extra={"event": "logout_unknown_service_id", "service_id": last_service_id},
        )
        return 0

    def continue_url(self, service_id: str) -> str:
        return f"{self.settings.portal_public_url}/auth/logout?serviceId={quote(service_id, safe='')}"

    def sign_out_url(self, service: ServiceEntry) -> str:
        return f"{service.url}/oauth2/sign_out?rd={quote(self.continue_url(service.id), safe='')}"

    def end_session_url(self, id_token: Optional[str]) -> str:
        """Keycloak end-session URL; prefers `id_token_hint` over `client_id`."""
        complete = quote(f"{self.settings.portal_public_url}/auth/logout/complete", safe="")
        base = (
            f"{self.settings.keycloak_public_url}/realms/{self.settings.realm}"
            "/protocol/openid-connect/logout"
        )
        if is_id_token_usable(id_token):
            return f"{base}?id_token_hint={quote(id_token, safe='')}&post_logout_redirect_uri={complete}"
        return f"{base}?client_id={quote(self.settings.client_id, safe='')}&post_logout_redirect_uri={complete}"

    def step(self, last_service_id: Optional[str] = None, id_token: Optional[str] = None) -> LogoutStep:
        """Run one hop of the cascade.

        Args:
            last_service_id: Service that just redirected back, None on the first hop
            id_token: Current id_token cookie value, if any

        Returns:
            LogoutStep describing the redirect and the cookies to clear
        """
        states = [CascadeState.CLEAR_LOCAL]
        skipped: List[str] = []
        work_list = self.work_list

        if last_service_id is None:
            logger.info("Logout requested", extra={"event": "logout_start"})
        else:
            logger.info(
                f"Continuing logout after {last_service_id}",
                extra={"event": "logout_continue", "service_id": last_service_id},
            )

        if self.probes_disabled and work_list:
            logger.warning(
                "TRAEFIK_INTERNAL_URL not set in production; skipping service probes",
                extra={"event": "logout_missing_traefik_url"},
            )
            remaining: List[ServiceEntry] = []
        else:
            remaining = work_list[self.start_index(last_service_id):]

        for service in remaining:
            states.append(CascadeState.PROBE_NEXT)
            if self.prober.is_reachable(service.url):
                states.append(CascadeState.REDIRECT_TO_SERVICE)
                logger.info(
                    f"Redirecting to {service.id} sign_out",
                    extra={"event": "logout_service_redirect", "service_id": service.id},
                )
                return LogoutStep(
                    redirect_url=self.sign_out_url(service),
                    next_service_id=service.id,
                    skipped=skipped,
                    clear_cookies=list(LOCAL_COOKIES),
                    states=states,
                )
            states.append(CascadeState.SKIP_SERVICE)
            skipped.append(service.id)
            logger.warning(
                f"Skipping unreachable service {service.id}; its session stays active",
                extra={"event": "logout_service_skipped", "service_id": service.id},
            )

        states.append(CascadeState.DONE)
        # Never log this URL: it may carry the id_token
        logger.info(
            "Redirecting to Keycloak end-session",
            extra={"event": "keycloak_logout_redirect", "has_id_token": bool(id_token)},
        )
        return LogoutStep(
            redirect_url=self.end_session_url(id_token),
            skipped=skipped,
            clear_cookies=[*LOCAL_COOKIES, ID_TOKEN_COOKIE],
            states=states,
        )


class LogoutCascade:
    """Drives a full cascade, assuming every sidecar redirects straight back."""

    def __init__(self, coordinator: LogoutCoordinator) -> None:
        self.coordinator = coordinator

    def run(
        self,
        id_token: Optional[str] = None,
        on_navigate: Optional[Callable[[LogoutStep], None]] = None,
    ) -> CascadeTrace:
        trace = CascadeTrace()
        last_service_id: Optional[str] = None
        # Each service is visited at most once, so this bounds the loop
        for _ in range(len(self.coordinator.work_list) + 1):
            step = self.coordinator.step(last_service_id, id_token)
            trace.skipped.extend(step.skipped)
            if on_navigate is not None:
                on_navigate(step)
            if step.done:
                trace.end_session_url = step.redirect_url
                return trace
            trace.navigations.append(step.redirect_url)
            last_service_id = step.next_service_id
        raise RuntimeError("Logout cascade did not terminate")
