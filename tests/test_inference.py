from stackgen.models.declaration import AuthType, RawDeclaration, RawServiceEntry, RawUserEntry
from stackgen.services.inference_service import (
    compute_roles,
    infer_auth_type,
    infer_display_name,
    infer_host,
    resolve_declaration,
    resolve_service,
    resolve_user,
)


def test_infer_display_name_title_cases_segments() -> None:
    assert infer_display_name("my-service") == "My Service"
    assert infer_display_name("API-gateway") == "Api Gateway"
    assert infer_display_name("demo") == "Demo"
    assert infer_display_name("") == ""


def test_infer_host_is_identity() -> None:
    assert infer_host("grafana") == "grafana"


def test_infer_auth_type() -> None:
    assert infer_auth_type(None) == AuthType.NONE
    assert infer_auth_type([]) == AuthType.NONE
    assert infer_auth_type(["admin"]) == AuthType.PROXY_AUTH


def test_resolve_service_infers_proxy_auth_from_roles() -> None:
    service = resolve_service("demo", RawServiceEntry(requiredRoles=["dev", "admin"]))

    assert service.auth_type == AuthType.PROXY_AUTH
    assert service.required_roles == ["dev", "admin"]
    assert service.host == "demo"
    assert service.display_name == "Demo"


def test_resolve_service_explicit_fields_win() -> None:
    raw = RawServiceEntry(
        displayName="Docs Site", host="documentation", authType="ui-auth", requiredRoles="dev"
    )
    service = resolve_service("docs", raw)

    assert service.display_name == "Docs Site"
    assert service.host == "documentation"
    assert service.auth_type == AuthType.UI_AUTH
    assert service.required_roles == ["dev"]


def test_compute_roles_explicit_is_sorted() -> None:
    assert compute_roles(["viewer", "admin", "dev"], [], []) == ["admin", "dev", "viewer"]


def test_compute_roles_compares_digits_per_character() -> None:
    assert compute_roles(["ops2", "ops10", "Admin", "admin"], [], []) == ["admin", "Admin", "ops10", "ops2"]


def test_compute_roles_union_when_not_explicit() -> None:
    users = [RawUserEntry(username="a", roles=["dev"]), RawUserEntry(username="b", roles="ops")]
    services = [RawServiceEntry(requiredRoles=["admin", "dev"]), RawServiceEntry()]

    assert compute_roles(None, users, services) == ["admin", "dev", "ops"]


def test_resolve_user_defaults() -> None:
    user = resolve_user(RawUserEntry(username="alice", password="x", roles="dev"), "local")

    assert user.email == "alice@local.local"
    assert user.first_name == "Alice"
    assert user.last_name == "User"
    assert user.roles == ["dev"]
    assert not hasattr(user, "password")


def test_resolve_declaration_sorts_services(raw_declaration) -> None:
    config = resolve_declaration("local", raw_declaration)

    assert [s.service_id for s in config.services] == ["demo", "docs", "dozzle"]
    assert config.roles == ["admin", "dev"]
    assert config.roles_explicit is True


def test_auth_type_none_iff_no_roles(resolved_config) -> None:
    for service in resolved_config.services:
        assert (service.auth_type == AuthType.NONE) == (not service.required_roles)


def test_empty_service_body_takes_defaults() -> None:
    raw = RawDeclaration(services={"docs": None})
    config = resolve_declaration("dev", raw)

    assert config.services[0].auth_type == AuthType.NONE
    assert config.roles == []
    assert config.roles_explicit is False
