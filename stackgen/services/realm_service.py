"""Keycloak realm import generator."""

import json
import logging
from typing import List

from stackgen.lib.constants import PORTAL_CLIENT_ID, SIDECAR_CLIENT_PREFIX, id_sort_key
from stackgen.lib.errors import MissingSecretError
from stackgen.models.config import StackSettings
from stackgen.models.realm import (
    KeycloakClient,
    KeycloakUser,
    ProtocolMapper,
    RealmContext,
    RealmImportDocument,
    RealmRole,
    RealmRoles,
)
from stackgen.models.resolved import AuthorizationPolicy, ResolvedDeploymentConfig, ResolvedUser
from stackgen.services.authorization_service import get_protected_services

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    "admin": "Administrator role - full access to all protected services",
    "dev": "Developer role - access to standard protected services",
}


def role_description(role: str) -> str:
    return ROLE_DESCRIPTIONS.get(role, f"Access role: {role}")


def sidecar_client_id(service_id: str) -> str:
    return f"{SIDECAR_CLIENT_PREFIX}{service_id}"


def _realm_role_mapper(name: str, claim_name: str) -> ProtocolMapper:
    return ProtocolMapper(
        name=name,
        protocol_mapper="oidc-usermodel-realm-role-mapper",
        config={
            "multivalued": "true",
            "claim.name": claim_name,
            "jsonType.label": "String",
            "id.token.claim": "true",
            "access.token.claim": "true",
            "userinfo.token.claim": "true",
        },
    )


class RealmService:
    """Builds the realm import for the portal and every protected service."""

    def __init__(self, settings: StackSettings) -> None:
        self.settings = settings

    def build_portal_client(self, secret: str) -> KeycloakClient:
        """Portal client bound to its own audience with an explicit roles claim."""
        portal_url = self.settings.portal_url
        return KeycloakClient(
            client_id=PORTAL_CLIENT_ID,
            name="Portal",
            secret=secret,
            redirect_uris=[f"{portal_url}/auth/callback"],
            web_origins=[portal_url],
            attributes={
                "post.logout.redirect.uris": (
                    f"{portal_url}/auth/logout/complete##{portal_url}/auth/logout/"
                ),
            },
            protocol_mappers=[
                ProtocolMapper(
                    name="portal-audience",
                    protocol_mapper="oidc-audience-mapper",
                    config={
                        "included.client.audience": PORTAL_CLIENT_ID,
                        "id.token.claim": "false",
                        "access.token.claim": "true",
                    },
                ),
                _realm_role_mapper("realm-roles", "realm_access.roles"),
            ],
        )

    def build_sidecar_client(self, policy: AuthorizationPolicy, secret: str) -> KeycloakClient:
        """Sidecar client whose realm roles surface as the `groups` claim."""
        service_url = self.settings.build_url(policy.host)
        return KeycloakClient(
            client_id=sidecar_client_id(policy.service_id),
            name=f"OAuth2 Proxy - {policy.service_id}",
            secret=secret,
            redirect_uris=[f"{service_url}/oauth2/callback"],
            web_origins=[service_url],
            attributes={"post.logout.redirect.uris": service_url},
            protocol_mappers=[_realm_role_mapper("realm-roles-mapper", "groups")],
        )

    def build_realm_roles(
        self, config: ResolvedDeploymentConfig, policies: List[AuthorizationPolicy]
    ) -> List[RealmRole]:
        names = list(config.roles)
        for policy in policies:
            for role in policy.required_roles:
                if role not in names:
                    names.append(role)
        return [RealmRole(name=name, description=role_description(name)) for name in names]

    def build_user(self, user: ResolvedUser, context: RealmContext) -> KeycloakUser:
        credential = context.user_credentials.get(user.username)
        if credential is None:
            raise MissingSecretError(f"Missing credential for user {user.username}")
        return KeycloakUser(
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            credentials=[credential],
            realm_roles=[f"default-roles-{self.settings.realm}", *user.roles],
        )

    def build(self, config: ResolvedDeploymentConfig, context: RealmContext) -> RealmImportDocument:
        """Build the realm import document.

        Args:
            config: Resolved deployment config
            context: Client secrets and hashed user credentials

        Returns:
            RealmImportDocument with clients sorted by client id

        Raises:
            MissingSecretError: If any client secret or user credential is absent
        """
        if not context.portal_client_secret:
            raise MissingSecretError("Missing portal client secret")

        policies = get_protected_services(config)
        missing = [p.service_id for p in policies if not context.client_secrets.get(p.service_id)]
        if missing:
            raise MissingSecretError(f"Missing client secret for services: {', '.join(missing)}")

        clients = [self.build_portal_client(context.portal_client_secret)]
        clients.extend(
            self.build_sidecar_client(policy, context.client_secrets[policy.service_id])
            for policy in policies
        )
        clients.sort(key=lambda client: id_sort_key(client.client_id))

        users = [self.build_user(user, context) for user in config.users]

        logger.debug(f"Built realm {self.settings.realm} with {len(clients)} clients and {len(users)} users")
        return RealmImportDocument(
            realm=self.settings.realm,
            ssl_required="external" if self.settings.use_https else "none",
            roles=RealmRoles(realm=self.build_realm_roles(config, policies)),
            clients=clients,
            users=users,
        )


def to_json(document: RealmImportDocument) -> str:
    return json.dumps(document.model_dump(by_alias=True), indent=2)
