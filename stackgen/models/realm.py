"""Keycloak realm import document models.

Field names follow the Keycloak import format via aliases; dump with
`by_alias=True`.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class _KeycloakModel(BaseModel):
    class Config:
        """Pydantic config."""
        populate_by_name = True


class ProtocolMapper(_KeycloakModel):
    name: str
    protocol: str = "openid-connect"
    protocol_mapper: str = Field(..., alias="protocolMapper")
    consent_required: bool = Field(False, alias="consentRequired")
    config: Dict[str, str]


class KeycloakClient(_KeycloakModel):
    client_id: str = Field(..., alias="clientId")
    name: str
    enabled: bool = True
    client_authenticator_type: str = Field("client-secret", alias="clientAuthenticatorType")
    secret: str
    redirect_uris: List[str] = Field(..., alias="redirectUris")
    web_origins: List[str] = Field(..., alias="webOrigins")
    attributes: Dict[str, str] = Field(default_factory=dict)
    public_client: bool = Field(False, alias="publicClient")
    protocol: str = "openid-connect"
    standard_flow_enabled: bool = Field(True, alias="standardFlowEnabled")
    direct_access_grants_enabled: bool = Field(False, alias="directAccessGrantsEnabled")
    protocol_mappers: List[ProtocolMapper] = Field(default_factory=list, alias="protocolMappers")


class UserCredential(_KeycloakModel):
    """A stored password credential; only hashed material, never plain text."""

    type: str = "password"
    secret_data: str = Field(..., alias="secretData")
    credential_data: str = Field(..., alias="credentialData")
    temporary: bool = False


class KeycloakUser(_KeycloakModel):
    username: str
    enabled: bool = True
    email_verified: bool = Field(True, alias="emailVerified")
    email: str
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    credentials: List[UserCredential]
    realm_roles: List[str] = Field(..., alias="realmRoles")


class RealmRole(_KeycloakModel):
    name: str
    description: str


class RealmRoles(_KeycloakModel):
    realm: List[RealmRole] = Field(default_factory=list)


class RealmImportDocument(_KeycloakModel):
    realm: str
    enabled: bool = True
    ssl_required: str = Field(..., alias="sslRequired")
    registration_allowed: bool = Field(False, alias="registrationAllowed")
    login_with_email_allowed: bool = Field(True, alias="loginWithEmailAllowed")
    duplicate_emails_allowed: bool = Field(False, alias="duplicateEmailsAllowed")
    reset_password_allowed: bool = Field(True, alias="resetPasswordAllowed")
    edit_username_allowed: bool = Field(False, alias="editUsernameAllowed")
    brute_force_protected: bool = Field(True, alias="bruteForceProtected")
    roles: RealmRoles
    clients: List[KeycloakClient]
    users: List[KeycloakUser]

    def client(self, client_id: str) -> Optional[KeycloakClient]:
        return next((c for c in self.clients if c.client_id == client_id), None)


class RealmContext(BaseModel):
    """
    Secret material the realm generator needs, supplied by the caller.

    Attributes:
        portal_client_secret (str): Secret for the portal OIDC client.
        client_secrets (Dict[str, str]): Sidecar client secret per service id.
        user_credentials (Dict[str, UserCredential]): Hashed credential per username.
    """

    portal_client_secret: str
    client_secrets: Dict[str, str] = Field(default_factory=dict)
    user_credentials: Dict[str, UserCredential] = Field(default_factory=dict)
