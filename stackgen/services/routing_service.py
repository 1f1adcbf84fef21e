"""Traefik dynamic configuration generator."""

import logging
from typing import Any, Dict, List, Optional

import yaml

from stackgen.lib.catalog import SERVICE_CATALOG, CatalogEntry
from stackgen.lib.constants import (
    KEYCLOAK_HOST,
    KEYCLOAK_PORT,
    PORTAL_HOST,
    PORTAL_PORT,
    RESERVED_HOSTS,
    SIDECAR_PORT,
    id_sort_key,
    is_slug,
)
from stackgen.lib.errors import RouteValidationError
from stackgen.models.config import StackSettings
from stackgen.models.resolved import ResolvedDeploymentConfig, RouteRequest, Upstream
from stackgen.services.authorization_service import is_protected_service

logger = logging.getLogger(__name__)

STRICT_CSP = (
    "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data:; font-src 'self'"
)
# The Keycloak login UI needs inline scripts and same-origin framing
KEYCLOAK_CSP = (
    "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data:; font-src 'self'; frame-ancestors 'self'"
)
HSTS_SECONDS = 31536000
CERT_RESOLVER = "letsencrypt"


def validate_route_requests(routes: List[RouteRequest]) -> List[str]:
    """Return a message for every duplicate, malformed, or reserved host."""
    problems = []
    seen = set()
    for route in routes:
        host = route.host
        if host in seen:
            problems.append(f'Duplicate host: "{host}" is defined multiple times')
        seen.add(host)
        if not is_slug(host):
            problems.append(
                f'Invalid host slug: "{host}" must be lowercase alphanumeric with hyphens'
            )
        if host in RESERVED_HOSTS:
            problems.append(f'Reserved host: "{host}" is reserved for core infrastructure')
    return problems


class RoutingService:
    """Builds the Traefik file-provider document for a deployment."""

    def __init__(self, settings: StackSettings) -> None:
        """Initialize routing service.

        Args:
            settings: Stack settings (domain, TLS, environment)
        """
        self.settings = settings

    @property
    def rate_limited(self) -> bool:
        return self.settings.is_production

    @property
    def security_headers(self) -> bool:
        return self.settings.is_production or self.settings.use_https

    @property
    def entry_points(self) -> List[str]:
        return ["websecure"] if self.settings.use_https else ["web"]

    def build_route_requests(
        self,
        config: ResolvedDeploymentConfig,
        catalog: Optional[Dict[str, CatalogEntry]] = None,
    ) -> List[RouteRequest]:
        """Route each service to its sidecar when protected, otherwise to the app.

        Args:
            config: Resolved deployment config
            catalog: Service catalog providing application ports

        Returns:
            One RouteRequest per service
        """
        catalog = catalog if catalog is not None else SERVICE_CATALOG
        routes = []
        for service in config.services:
            if is_protected_service(service):
                upstream = Upstream(
                    address=self.settings.container_name(f"{service.service_id}-oauth2-proxy"),
                    port=SIDECAR_PORT,
                )
            else:
                upstream = Upstream(
                    address=self.settings.container_name(service.service_id),
                    port=catalog[service.service_id].port,
                )
            routes.append(RouteRequest(host=service.host, upstream=upstream))
        return routes

    def generate(
        self, config: ResolvedDeploymentConfig, routes: List[RouteRequest]
    ) -> Dict[str, Any]:
        """Generate the dynamic configuration document.

        Args:
            config: Resolved deployment config
            routes: Route requests, in any order

        Returns:
            Dict with `http.routers`, `http.services` and `http.middlewares`

        Raises:
            RouteValidationError: If any host is duplicated, malformed, or reserved
        """
        problems = validate_route_requests(routes)
        if problems:
            raise RouteValidationError(problems)

        routers: Dict[str, Any] = {}
        services: Dict[str, Any] = {}
        middlewares: Dict[str, Any] = {}

        if self.security_headers:
            middlewares["security-headers"] = self._headers_middleware(STRICT_CSP, frame_deny=True)
            middlewares["keycloak-security-headers"] = self._headers_middleware(
                KEYCLOAK_CSP, frame_deny=False
            )
        if self.rate_limited:
            middlewares["rate-limit"] = {"rateLimit": {"average": 100, "burst": 50, "period": "1s"}}
            middlewares["in-flight-req"] = {"inFlightReq": {"amount": 100}}

        routers["redirect-base"] = self._router(
            f"Host(`{self.settings.base_domain}`)",
            "noop@internal",
            ["redirect-to-portal"],
            hardened=False,
        )
        middlewares["redirect-to-portal"] = {
            "redirectRegex": {
                "regex": "^.*$",
                "replacement": self.settings.portal_url,
                "permanent": False,
            }
        }

        routers["core-portal"] = self._router(self._host_rule(PORTAL_HOST), "core-portal")
        services["core-portal"] = self._load_balancer(
            self.settings.container_name(PORTAL_HOST), PORTAL_PORT
        )
        routers["core-keycloak"] = self._router(
            self._host_rule(KEYCLOAK_HOST),
            "core-keycloak",
            headers_middleware="keycloak-security-headers",
        )
        services["core-keycloak"] = self._load_balancer(
            self.settings.container_name(KEYCLOAK_HOST), KEYCLOAK_PORT
        )

        for route in sorted(routes, key=lambda r: id_sort_key(r.host)):
            router_name = f"host-{route.host}"
            service_name = f"svc-{route.host}"
            routers[router_name] = self._router(self._host_rule(route.host), service_name)
            services[service_name] = self._load_balancer(route.upstream.address, route.upstream.port)

        logger.debug(
            f"Generated routing for {len(routes)} services in {config.environment_name} "
            f"({len(middlewares)} middlewares)"
        )
        return {"http": {"routers": routers, "services": services, "middlewares": middlewares}}

    def generate_yaml(self, config: ResolvedDeploymentConfig, routes: List[RouteRequest]) -> str:
        return to_yaml(self.generate(config, routes))

    def _host_rule(self, host: str) -> str:
        return f"Host(`{host}.{self.settings.base_domain}`)"

    def _router(
        self,
        rule: str,
        service: str,
        middlewares: Optional[List[str]] = None,
        headers_middleware: str = "security-headers",
        hardened: bool = True,
    ) -> Dict[str, Any]:
        chain = list(middlewares or [])
        if hardened:
            # Rate limiting runs before headers are attached
            if self.rate_limited:
                chain.extend(["rate-limit", "in-flight-req"])
            if self.security_headers:
                chain.append(headers_middleware)

        router: Dict[str, Any] = {"rule": rule, "service": service, "entryPoints": self.entry_points}
        if chain:
            router["middlewares"] = chain
        if self.settings.use_https:
            router["tls"] = {"certResolver": CERT_RESOLVER}
        return router

    def _headers_middleware(self, csp: str, frame_deny: bool) -> Dict[str, Any]:
        headers: Dict[str, Any] = {
            "contentTypeNosniff": True,
            "browserXssFilter": True,
            "frameDeny": frame_deny,
            "referrerPolicy": "strict-origin-when-cross-origin",
            "contentSecurityPolicy": csp,
        }
        if self.settings.use_https:
            headers["stsSeconds"] = HSTS_SECONDS
            headers["stsIncludeSubdomains"] = True
            headers["stsPreload"] = True
        return {"headers": headers}

    @staticmethod
    def _load_balancer(address: str, port: int) -> Dict[str, Any]:
        return {"loadBalancer": {"servers": [{"url": f"http://{address}:{port}"}]}}


def to_yaml(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
