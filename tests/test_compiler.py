import json
from pathlib import Path

import pytest
import yaml

from stackgen.lib.errors import DeploymentConfigError
from stackgen.services.compiler_service import CompilerService
from stackgen.services.config_service import ConfigService


def _stack_file(**overrides):
    data = {
        "stack": {"deploymentId": "local", "environment": "local", "keycloakRealm": "stackgen"},
        "roles": ["admin", "dev"],
        "services": {
            "demo": {"requiredRoles": ["dev", "admin"], "group": "apps"},
            "docs": {},
        },
        "credentials": {"users": [{"username": "alice", "password": "pw-alice-1", "roles": "admin"}]},
    }
    data.update(overrides)
    return ConfigService.parse(data)


def test_compile_produces_consistent_artifacts(secrets_bundle) -> None:
    artifacts = CompilerService(_stack_file()).compile(secrets_bundle)

    routing = yaml.safe_load(artifacts.routing_yaml)
    realm = json.loads(artifacts.realm_json)
    descriptor = json.loads(artifacts.descriptor_json)

    assert set(routing["http"]["routers"]) >= {"host-demo", "host-docs", "core-portal", "core-keycloak"}
    assert routing["http"]["services"]["svc-demo"]["loadBalancer"]["servers"][0]["url"] == (
        "http://local-stackgen-demo-oauth2-proxy:4180"
    )
    assert [c["clientId"] for c in realm["clients"]] == ["oauth2-proxy-demo", "portal"]
    assert list(artifacts.sidecar_envs) == ["demo"]
    assert "OAUTH2_PROXY_ALLOWED_GROUPS=dev,admin\n" in artifacts.sidecar_envs["demo"]
    assert [s["id"] for s in descriptor["services"]] == ["demo", "docs"]
    assert artifacts.descriptor_compact is None


def test_compile_is_deterministic_apart_from_password_salt(secrets_bundle) -> None:
    compiler = CompilerService(_stack_file())
    first = compiler.compile(secrets_bundle)
    second = compiler.compile(secrets_bundle)

    assert first.routing_yaml == second.routing_yaml
    assert first.descriptor_json == second.descriptor_json
    assert first.sidecar_envs == second.sidecar_envs


def test_json_injection_emits_compact_descriptor(secrets_bundle) -> None:
    stack_file = _stack_file(
        stack={
            "deploymentId": "local",
            "environment": "local",
            "keycloakRealm": "stackgen",
            "descriptorInjection": "json",
        }
    )
    artifacts = CompilerService(stack_file).compile(secrets_bundle)

    assert json.loads(artifacts.descriptor_compact) == json.loads(artifacts.descriptor_json)


def test_duplicate_host_generates_nothing(secrets_bundle) -> None:
    stack_file = _stack_file(services={"demo": {"host": "app", "requiredRoles": "dev"}, "docs": {"host": "app"}})

    with pytest.raises(DeploymentConfigError) as exc_info:
        CompilerService(stack_file).compile(secrets_bundle)
    assert [e.code.value for e in exc_info.value.errors] == ["DUPLICATE_HOST"]


def test_missing_user_password_is_fatal(secrets_bundle) -> None:
    stack_file = _stack_file(credentials={"users": [{"username": "alice", "roles": "admin"}]})

    with pytest.raises(DeploymentConfigError, match="alice has no password"):
        CompilerService(stack_file).compile(secrets_bundle)


def test_write_lays_out_artifacts(tmp_path: Path, secrets_bundle) -> None:
    compiler = CompilerService(_stack_file())
    paths = compiler.write(compiler.compile(secrets_bundle), tmp_path)

    assert paths["routing"] == tmp_path / "traefik" / "dynamic.yml"
    assert paths["realm"] == tmp_path / "keycloak" / "realm-stackgen.json"
    assert paths["sidecar:demo"] == tmp_path / "oauth2-proxy" / "demo.env"
    assert all(path.exists() for path in paths.values())


def test_declaration_and_password_problems_reported_together(secrets_bundle) -> None:
    stack_file = _stack_file(
        services={"demo": {"host": "portal", "requiredRoles": "dev"}},
        credentials={"users": [{"username": "alice", "roles": "admin"}]},
    )

    with pytest.raises(DeploymentConfigError) as exc_info:
        CompilerService(stack_file).compile(secrets_bundle)
    assert [e.code.value for e in exc_info.value.errors] == ["RESERVED_HOST", "MISSING_USER_PASSWORD"]
