"""Test fixtures and configuration."""

import pytest

from stackgen.models.config import StackSettings
from stackgen.models.declaration import RawDeclaration
from stackgen.models.secrets import SecretsBundle
from stackgen.services.inference_service import resolve_declaration

# 32-character secrets, valid as oauth2-proxy cookie secrets
SECRET_A = "A" * 32
SECRET_B = "B" * 32


@pytest.fixture
def local_settings() -> StackSettings:
    return StackSettings(
        deploymentId="local",
        environment="local",
        baseDomain="localhost",
        keycloakRealm="stackgen",
    )


@pytest.fixture
def prod_settings() -> StackSettings:
    return StackSettings(
        deploymentId="acme",
        environment="prod",
        baseDomain="example.com",
        keycloakRealm="acme",
        useHttps=True,
        acmeEmail="ops@example.com",
    )


@pytest.fixture
def raw_declaration() -> RawDeclaration:
    return RawDeclaration(
        roles=["admin", "dev"],
        users=[
            {"username": "alice", "password": "s3cret-alice", "roles": ["admin", "dev"]},
            {"username": "bob", "password": "s3cret-bob", "roles": "dev"},
        ],
        services={
            "demo": {"requiredRoles": ["dev", "admin"], "group": "apps", "icon": "rocket"},
            "docs": {"group": "docs"},
            "dozzle": {"displayName": "Container Logs", "requiredRoles": "admin", "group": "admin"},
        },
    )


@pytest.fixture
def resolved_config(raw_declaration):
    return resolve_declaration("local", raw_declaration)


@pytest.fixture
def secrets_bundle() -> SecretsBundle:
    return SecretsBundle(
        portal_client_secret="portal-secret",
        client_secrets={"demo": "demo-client-secret", "dozzle": "dozzle-client-secret"},
        cookie_secrets={"demo": SECRET_A, "dozzle": SECRET_B},
    )
