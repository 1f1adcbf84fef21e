"""Derives sidecar authorization policy from the resolved model."""

from typing import List

from stackgen.lib.constants import id_sort_key
from stackgen.models.declaration import AuthType
from stackgen.models.resolved import (
    AuthorizationPolicy,
    ResolvedDeploymentConfig,
    ResolvedServiceConfig,
)


def is_protected_service(service: ResolvedServiceConfig) -> bool:
    """Whether the service sits behind its own authentication sidecar."""
    return service.auth_type == AuthType.PROXY_AUTH


def get_protected_services(config: ResolvedDeploymentConfig) -> List[AuthorizationPolicy]:
    """One policy per proxy-auth service, sorted by service id."""
    policies = [
        AuthorizationPolicy(
            service_id=service.service_id,
            host=service.host,
            required_roles=list(service.required_roles),
        )
        for service in config.services
        if is_protected_service(service)
    ]
    return sorted(policies, key=lambda policy: id_sort_key(policy.service_id))


def get_protected_service_ids(config: ResolvedDeploymentConfig) -> List[str]:
    return [policy.service_id for policy in get_protected_services(config)]


def build_allowed_groups(required_roles: List[str]) -> str:
    # Declaration order is kept; the sidecar treats the list as a set.
    return ",".join(required_roles)
