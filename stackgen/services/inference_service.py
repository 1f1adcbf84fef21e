"""Default inference for services, users and realm roles."""

import logging
from typing import Iterable, List, Optional

from stackgen.lib.constants import id_sort_key
from stackgen.models.declaration import AuthType, RawDeclaration, RawServiceEntry, RawUserEntry
from stackgen.models.resolved import (
    ResolvedDeploymentConfig,
    ResolvedServiceConfig,
    ResolvedUser,
)

logger = logging.getLogger(__name__)


def infer_display_name(service_id: str) -> str:
    """Title-case each hyphen-separated segment: `my-service` -> `My Service`."""
    if not service_id:
        return ""
    return " ".join(word[:1].upper() + word[1:].lower() for word in service_id.split("-"))


def infer_host(service_id: str) -> str:
    return service_id


def infer_auth_type(required_roles: Optional[List[str]] = None) -> AuthType:
    if not required_roles:
        return AuthType.NONE
    return AuthType.PROXY_AUTH


def sort_collated(values: Iterable[str]) -> List[str]:
    return sorted(values, key=id_sort_key)


def compute_roles(
    explicit_roles: Optional[List[str]],
    users: Iterable[RawUserEntry],
    services: Iterable[RawServiceEntry],
) -> List[str]:
    """Realm roles for a declaration.

    Args:
        explicit_roles: Declared allow-list, if any
        users: Raw users whose roles feed the union
        services: Raw services whose required roles feed the union

    Returns:
        The explicit list sorted, otherwise the sorted union of referenced roles
    """
    if explicit_roles is not None:
        return sort_collated(dict.fromkeys(explicit_roles))

    roles = set()
    for user in users:
        roles.update(user.roles)
    for service in services:
        roles.update(service.required_roles or [])
    return sort_collated(roles)


def resolve_service(service_id: str, raw: RawServiceEntry) -> ResolvedServiceConfig:
    """Fill in every field the raw entry leaves out. Explicit fields win."""
    required_roles = list(raw.required_roles or [])
    return ResolvedServiceConfig(
        service_id=service_id,
        display_name=raw.display_name if raw.display_name is not None else infer_display_name(service_id),
        host=raw.host if raw.host is not None else infer_host(service_id),
        auth_type=raw.auth_type if raw.auth_type is not None else infer_auth_type(required_roles),
        required_roles=required_roles,
        group=raw.group,
        icon=raw.icon,
        description=raw.description,
    )


def resolve_user(raw: RawUserEntry, environment_name: str) -> ResolvedUser:
    """Apply user defaults; the password is deliberately dropped."""
    return ResolvedUser(
        username=raw.username,
        email=raw.email or f"{raw.username}@{environment_name}.local",
        first_name=raw.first_name or infer_display_name(raw.username),
        last_name=raw.last_name or "User",
        roles=list(raw.roles),
    )


def resolve_declaration(environment_name: str, raw: RawDeclaration) -> ResolvedDeploymentConfig:
    """Resolve a raw declaration into the immutable deployment model."""
    services = [
        resolve_service(service_id, entry)
        for service_id, entry in sorted(raw.services.items(), key=lambda item: id_sort_key(item[0]))
    ]
    users = [resolve_user(user, environment_name) for user in raw.users]
    roles = compute_roles(raw.explicit_roles, raw.users, raw.services.values())

    logger.debug(
        f"Resolved {len(services)} services, {len(users)} users and {len(roles)} roles "
        f"for environment {environment_name}"
    )
    return ResolvedDeploymentConfig(
        environment_name=environment_name,
        roles=roles,
        roles_explicit=raw.explicit_roles is not None,
        users=users,
        services=services,
    )
