"""Resolved (fully defaulted) deployment model and the validation vocabulary."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from stackgen.models.declaration import AuthType


class ResolvedUser(BaseModel):
    username: str
    email: str
    first_name: str
    last_name: str
    roles: List[str]

    class Config:
        """Pydantic config."""
        frozen = True


class ResolvedServiceConfig(BaseModel):
    """A service with every inferable field filled in."""

    service_id: str
    display_name: str
    host: str
    auth_type: AuthType
    required_roles: List[str] = Field(default_factory=list)
    group: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def is_protected(self) -> bool:
        return self.auth_type != AuthType.NONE


class ResolvedDeploymentConfig(BaseModel):
    """
    The single immutable value every generator reads.

    Attributes:
        environment_name (str): Environment the declaration was resolved for.
        roles (List[str]): Sorted, deduplicated realm roles.
        roles_explicit (bool): Whether `roles` came from the declaration (allow-list).
        users (List[ResolvedUser]): Bootstrap users in declaration order.
        services (List[ResolvedServiceConfig]): Services sorted by service id.
    """

    environment_name: str
    roles: List[str]
    roles_explicit: bool = False
    users: List[ResolvedUser] = Field(default_factory=list)
    services: List[ResolvedServiceConfig] = Field(default_factory=list)

    class Config:
        """Pydantic config."""
        frozen = True

    def service(self, service_id: str) -> Optional[ResolvedServiceConfig]:
        for entry in self.services:
            if entry.service_id == service_id:
                return entry
        return None


class ErrorCode(str, Enum):
    UNKNOWN_SERVICE = "UNKNOWN_SERVICE"
    INVALID_SERVICE_ID = "INVALID_SERVICE_ID"
    INVALID_HOST = "INVALID_HOST"
    RESERVED_HOST = "RESERVED_HOST"
    DUPLICATE_HOST = "DUPLICATE_HOST"
    AUTH_NONE_WITH_ROLES = "AUTH_NONE_WITH_ROLES"
    PROXY_AUTH_WITHOUT_ROLES = "PROXY_AUTH_WITHOUT_ROLES"
    UI_AUTH_WITHOUT_ROLES = "UI_AUTH_WITHOUT_ROLES"
    ROLE_NOT_IN_ALLOWLIST = "ROLE_NOT_IN_ALLOWLIST"
    INVALID_ROLE_FORMAT = "INVALID_ROLE_FORMAT"
    USERS_NOT_ALLOWED = "USERS_NOT_ALLOWED"
    INVALID_USERNAME = "INVALID_USERNAME"
    INVALID_EMAIL = "INVALID_EMAIL"
    USER_NO_ROLES = "USER_NO_ROLES"
    MISSING_USER_PASSWORD = "MISSING_USER_PASSWORD"
    PLACEHOLDER_PASSWORD = "PLACEHOLDER_PASSWORD"


class ValidationIssue(BaseModel):
    """One failed rule, with a dotted path into the declaration."""

    code: ErrorCode
    message: str
    path: str

    class Config:
        """Pydantic config."""
        frozen = True


class ValidationResult(BaseModel):
    valid: bool
    config: Optional[ResolvedDeploymentConfig] = None
    errors: List[ValidationIssue] = Field(default_factory=list)


class AuthorizationPolicy(BaseModel):
    """Sidecar authorization for one proxy-auth service."""

    service_id: str
    host: str
    required_roles: List[str]

    class Config:
        """Pydantic config."""
        frozen = True


class Upstream(BaseModel):
    address: str
    port: int


class RouteRequest(BaseModel):
    """A host to route and the in-network address that serves it."""

    host: str
    upstream: Upstream
