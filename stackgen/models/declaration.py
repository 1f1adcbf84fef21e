"""Raw declaration models as read from a stack file."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class AuthType(str, Enum):
    NONE = "none"
    PROXY_AUTH = "proxy-auth"
    UI_AUTH = "ui-auth"


def normalize_roles(value: Any) -> List[str]:
    """Accept a single role or a list of roles; always return a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class RawServiceEntry(BaseModel):
    """
    A declared service. Every field is optional and inferred when absent.

    Attributes:
        display_name (Optional[str]): Name shown in the portal.
        host (Optional[str]): Subdomain the service is routed on.
        required_roles (Optional[List[str]]): Roles allowed to reach the service.
        auth_type (Optional[AuthType]): How access is enforced.
    """

    display_name: Optional[str] = Field(None, alias="displayName")
    host: Optional[str] = None
    required_roles: Optional[List[str]] = Field(None, alias="requiredRoles")
    auth_type: Optional[AuthType] = Field(None, alias="authType")
    group: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None

    class Config:
        """Pydantic config."""
        populate_by_name = True
        extra = "forbid"

    @field_validator("required_roles", mode="before")
    @classmethod
    def _normalize_required_roles(cls, value):
        if value is None:
            return None
        return normalize_roles(value)


class RawUserEntry(BaseModel):
    """
    A bootstrap user. Passwords stay in the raw model and are never resolved.

    Attributes:
        username (str): Login name.
        password (Optional[str]): Plain-text bootstrap password.
        roles (List[str]): Realm roles; a single string is accepted.
    """

    username: str
    password: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    roles: List[str] = Field(default_factory=list)

    class Config:
        """Pydantic config."""
        populate_by_name = True
        extra = "forbid"

    @field_validator("roles", mode="before")
    @classmethod
    def _normalize_user_roles(cls, value):
        return normalize_roles(value)


class RawDeclaration(BaseModel):
    """Everything a deployment declares apart from stack settings."""

    explicit_roles: Optional[List[str]] = Field(None, alias="roles")
    users: List[RawUserEntry] = Field(default_factory=list)
    services: Dict[str, RawServiceEntry] = Field(default_factory=dict)

    class Config:
        """Pydantic config."""
        populate_by_name = True

    @field_validator("explicit_roles", mode="before")
    @classmethod
    def _normalize_explicit_roles(cls, value):
        if value is None:
            return None
        return normalize_roles(value)

    @field_validator("users", mode="before")
    @classmethod
    def _empty_users(cls, value):
        return value or []

    @field_validator("services", mode="before")
    @classmethod
    def _empty_service_entries(cls, value):
        # `demo:` with no body is a service that takes every default
        if not value:
            return {}
        if not isinstance(value, dict):
            return value
        return {key: entry or {} for key, entry in value.items()}

    @model_validator(mode="after")
    def _unique_usernames(self):
        seen = set()
        for user in self.users:
            if user.username in seen:
                raise ValueError(f"Duplicate username: {user.username}")
            seen.add(user.username)
        return self

    def passwords(self) -> Dict[str, Optional[str]]:
        return {user.username: user.password for user in self.users}
