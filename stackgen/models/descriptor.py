"""UI descriptor models. Dump with `by_alias=True, exclude_none=True`."""

from typing import List, Optional

from pydantic import BaseModel, Field

from stackgen.models.declaration import AuthType


class _DescriptorModel(BaseModel):
    class Config:
        """Pydantic config."""
        populate_by_name = True
        use_enum_values = True


class FrontendEndpoint(_DescriptorModel):
    public_url: str = Field(..., alias="publicUrl")


class IdentityProviderEndpoint(_DescriptorModel):
    public_url: str = Field(..., alias="publicUrl")
    issuer_url: str = Field(..., alias="issuerUrl")
    realm: str


class ServiceEntry(_DescriptorModel):
    """
    A service as shown in the portal.

    Attributes:
        id (str): Service id.
        name (str): Display name.
        url (str): Browser-visible URL.
        protected (bool): True for every authType other than none.
        auth_type (AuthType): How access is enforced.
        required_roles (Optional[List[str]]): Present only for protected services.
    """

    id: str
    name: str
    url: str
    protected: bool
    auth_type: AuthType = Field(..., alias="authType")
    group: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    required_roles: Optional[List[str]] = Field(None, alias="requiredRoles")


class UIDescriptor(_DescriptorModel):
    version: str
    deployment_id: str = Field(..., alias="deploymentId")
    environment: str
    base_domain: str = Field(..., alias="baseDomain")
    frontend: FrontendEndpoint
    identity_provider: IdentityProviderEndpoint = Field(..., alias="identityProvider")
    services: List[ServiceEntry] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def proxy_auth_services(self) -> List[ServiceEntry]:
        """Sidecar-protected entries in descriptor order."""
        return [s for s in self.services if s.auth_type == AuthType.PROXY_AUTH.value]
