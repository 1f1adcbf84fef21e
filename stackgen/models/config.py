"""Stack settings models using Pydantic."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from stackgen.lib.constants import (
    DEFAULT_PROJECT_NAME,
    INTERNAL_ISSUER_ENVIRONMENT,
    KEYCLOAK_HOST,
    KEYCLOAK_PORT,
    PORTAL_HOST,
    PRODUCTION_ENVIRONMENT,
    is_slug,
    short_name,
)
from stackgen.models.declaration import RawDeclaration


class StackSettings(BaseModel):
    """Deployment-wide settings from the `stack` section of a declaration."""

    deployment_id: str = Field(..., alias="deploymentId")
    environment: str
    base_domain: str = Field("localhost", alias="baseDomain")
    use_https: bool = Field(False, alias="useHttps")
    realm: str = Field(..., alias="keycloakRealm")
    keycloak_dev_mode: bool = Field(False, alias="keycloakDevMode")
    acme_email: Optional[str] = Field(None, alias="acmeEmail")
    acme_staging: bool = Field(False, alias="acmeStaging")
    descriptor_injection: Literal["file", "json"] = Field("file", alias="descriptorInjection")
    project_name: str = Field(DEFAULT_PROJECT_NAME, alias="projectName")
    cookie_domain: Optional[str] = Field(None, alias="cookieDomain")
    issuer_mode: Optional[Literal["internal", "public"]] = Field(None, alias="issuerMode")

    class Config:
        """Pydantic config."""
        populate_by_name = True
        frozen = True

    @field_validator("deployment_id", "environment")
    @classmethod
    def _must_be_slug(cls, value: str) -> str:
        if not is_slug(value):
            raise ValueError(f"'{value}' must be a lowercase slug")
        return value

    @model_validator(mode="after")
    def _acme_email_with_https(self):
        if self.use_https and not self.acme_email:
            raise ValueError("acmeEmail is required when useHttps is enabled")
        return self

    @property
    def scheme(self) -> str:
        return "https" if self.use_https else "http"

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION_ENVIRONMENT

    def build_url(self, host: Optional[str] = None) -> str:
        """Browser-visible URL for a host under the base domain."""
        if host:
            return f"{self.scheme}://{host}.{self.base_domain}"
        return f"{self.scheme}://{self.base_domain}"

    @property
    def portal_url(self) -> str:
        return self.build_url(PORTAL_HOST)

    @property
    def keycloak_url(self) -> str:
        return self.build_url(KEYCLOAK_HOST)

    @property
    def issuer_url(self) -> str:
        return f"{self.keycloak_url}/realms/{self.realm}"

    @property
    def internal_issuer_url(self) -> str:
        keycloak = short_name(self.deployment_id, self.project_name, KEYCLOAK_HOST)
        return f"http://{keycloak}:{KEYCLOAK_PORT}/realms/{self.realm}"

    @property
    def uses_internal_issuer(self) -> bool:
        """Whether sidecars discover the issuer over the internal network."""
        if self.issuer_mode is not None:
            return self.issuer_mode == "internal"
        return self.environment == INTERNAL_ISSUER_ENVIRONMENT

    def container_name(self, service_id: str) -> str:
        return short_name(self.deployment_id, self.project_name, service_id)


class Credentials(BaseModel):
    """Keycloak admin credentials from the `credentials` section."""

    keycloak_admin_username: str = Field("admin", alias="keycloakAdminUsername")
    keycloak_admin_password: Optional[str] = Field(None, alias="keycloakAdminPassword")

    class Config:
        """Pydantic config."""
        populate_by_name = True


class StackFile(BaseModel):
    """A parsed `config.<stack>.yaml`."""

    stack: StackSettings
    credentials: Credentials = Field(default_factory=Credentials)
    declaration: RawDeclaration
