"""oauth2-proxy environment generator."""

import logging
from typing import Dict, List, Optional

from stackgen.lib.catalog import SERVICE_CATALOG, CatalogEntry
from stackgen.lib.constants import SIDECAR_PORT
from stackgen.lib.errors import MissingSecretError
from stackgen.models.config import StackSettings
from stackgen.models.resolved import AuthorizationPolicy, ResolvedDeploymentConfig, Upstream
from stackgen.models.secrets import SecretsBundle
from stackgen.models.sidecar import SidecarContext, SidecarEnvironment
from stackgen.services.authorization_service import build_allowed_groups, get_protected_services
from stackgen.services.realm_service import sidecar_client_id

logger = logging.getLogger(__name__)

ENV_PREFIX = "OAUTH2_PROXY_"
COOKIE_SECRET_LENGTHS = (16, 24, 32)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class SidecarService:
    """Builds the oauth2-proxy settings for every protected service."""

    def __init__(self, settings: StackSettings) -> None:
        self.settings = settings

    @property
    def whitelist_domains(self) -> str:
        base = self.settings.base_domain
        return ".localhost" if base == "localhost" else f".{base}"

    def build(self, policy: AuthorizationPolicy, context: SidecarContext) -> SidecarEnvironment:
        """Build the sidecar environment for one policy.

        Args:
            policy: Authorization policy of the protected service
            context: Secrets and upstream for this sidecar

        Returns:
            SidecarEnvironment with settings in a fixed order

        Raises:
            MissingSecretError: If a secret is missing or the cookie secret has a bad length
        """
        if not context.client_secret:
            raise MissingSecretError(f"Missing client secret for {policy.service_id}")
        if len(context.cookie_secret.encode("utf-8")) not in COOKIE_SECRET_LENGTHS:
            raise MissingSecretError(
                f"Cookie secret for {policy.service_id} must be 16, 24 or 32 bytes"
            )

        internal = self.settings.uses_internal_issuer
        issuer_url = self.settings.internal_issuer_url if internal else self.settings.issuer_url
        service_url = self.settings.build_url(policy.host)

        settings = [
            ("PROVIDER", "oidc"),
            ("OIDC_ISSUER_URL", issuer_url),
            ("CLIENT_ID", sidecar_client_id(policy.service_id)),
            ("CLIENT_SECRET", context.client_secret),
            # The internal issuer never matches the token `iss`; only skip there
            ("INSECURE_OIDC_SKIP_ISSUER_VERIFICATION", _flag(internal)),
            ("SCOPE", "openid email profile"),
            ("COOKIE_SECRET", context.cookie_secret),
            ("COOKIE_NAME", f"_oauth2_proxy_{policy.service_id}"),
            ("COOKIE_SAMESITE", "lax"),
            ("COOKIE_SECURE", _flag(self.settings.use_https)),
            ("UPSTREAMS", f"http://{context.upstream.address}:{context.upstream.port}/"),
            ("REDIRECT_URL", f"{service_url}/oauth2/callback"),
            ("WHITELIST_DOMAINS", self.whitelist_domains),
            ("HTTP_ADDRESS", f"0.0.0.0:{SIDECAR_PORT}"),
            ("EMAIL_DOMAINS", "*"),
            ("SKIP_PROVIDER_BUTTON", "true"),
            ("PASS_ACCESS_TOKEN", "true"),
            ("PASS_AUTHORIZATION_HEADER", "true"),
            ("SET_XAUTHREQUEST", "true"),
            ("SILENCE_PING_LOGGING", "true"),
            ("OIDC_GROUPS_CLAIM", "groups"),
            ("ALLOWED_GROUPS", build_allowed_groups(policy.required_roles)),
        ]
        # Host-only cookies unless the deployment opts in to a shared domain
        if self.settings.cookie_domain:
            settings.append(("COOKIE_DOMAINS", self.settings.cookie_domain))

        return SidecarEnvironment(
            service_id=policy.service_id,
            settings=[(f"{ENV_PREFIX}{key}", value) for key, value in settings],
        )

    def build_all(
        self,
        config: ResolvedDeploymentConfig,
        secrets: SecretsBundle,
        catalog: Optional[Dict[str, CatalogEntry]] = None,
    ) -> List[SidecarEnvironment]:
        """Build environments for every proxy-auth service, sorted by service id."""
        catalog = catalog if catalog is not None else SERVICE_CATALOG
        environments = []
        for policy in get_protected_services(config):
            context = SidecarContext(
                client_secret=secrets.client_secrets.get(policy.service_id, ""),
                cookie_secret=secrets.cookie_secrets.get(policy.service_id, ""),
                upstream=Upstream(
                    address=self.settings.container_name(policy.service_id),
                    port=catalog[policy.service_id].port,
                ),
            )
            environments.append(self.build(policy, context))
        logger.debug(f"Built {len(environments)} sidecar environments")
        return environments


def get_env_value(environment: SidecarEnvironment, key: str) -> Optional[str]:
    """Look up a setting by its unprefixed or prefixed name."""
    if not key.startswith(ENV_PREFIX):
        key = f"{ENV_PREFIX}{key}"
    return environment.get(key)
