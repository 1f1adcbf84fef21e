import itertools

import pytest
import yaml

from stackgen.lib.errors import RouteValidationError
from stackgen.models.resolved import RouteRequest
from stackgen.services.routing_service import RoutingService, validate_route_requests


def _route(host: str, port: int = 80) -> RouteRequest:
    return RouteRequest(host=host, upstream={"address": f"local-stackgen-{host}", "port": port})


def test_service_router_names_and_rule(local_settings, resolved_config) -> None:
    document = RoutingService(local_settings).generate(resolved_config, [_route("docs")])
    http = document["http"]

    router = http["routers"]["host-docs"]
    assert router["rule"] == "Host(`docs.localhost`)"
    assert router["service"] == "svc-docs"
    assert router["entryPoints"] == ["web"]
    assert "middlewares" not in router
    assert "tls" not in router
    assert http["services"]["svc-docs"] == {
        "loadBalancer": {"servers": [{"url": "http://local-stackgen-docs:80"}]}
    }


def test_core_routes_always_present(local_settings, resolved_config) -> None:
    http = RoutingService(local_settings).generate(resolved_config, [])["http"]

    assert http["routers"]["core-portal"]["rule"] == "Host(`portal.localhost`)"
    assert http["routers"]["core-keycloak"]["rule"] == "Host(`keycloak.localhost`)"
    assert http["services"]["core-portal"]["loadBalancer"]["servers"][0]["url"] == (
        "http://local-stackgen-portal:3000"
    )
    assert http["services"]["core-keycloak"]["loadBalancer"]["servers"][0]["url"] == (
        "http://local-stackgen-keycloak:8080"
    )
    assert http["routers"]["redirect-base"]["service"] == "noop@internal"
    assert http["middlewares"]["redirect-to-portal"]["redirectRegex"]["replacement"] == (
        "http://portal.localhost"
    )


def test_production_hardening(prod_settings, resolved_config) -> None:
    http = RoutingService(prod_settings).generate(resolved_config, [_route("demo", 4180)])["http"]

    router = http["routers"]["host-demo"]
    assert router["entryPoints"] == ["websecure"]
    assert router["middlewares"] == ["rate-limit", "in-flight-req", "security-headers"]
    assert router["tls"] == {"certResolver": "letsencrypt"}
    assert http["routers"]["core-keycloak"]["middlewares"] == [
        "rate-limit",
        "in-flight-req",
        "keycloak-security-headers",
    ]
    assert http["middlewares"]["rate-limit"] == {
        "rateLimit": {"average": 100, "burst": 50, "period": "1s"}
    }

    strict = http["middlewares"]["security-headers"]["headers"]
    relaxed = http["middlewares"]["keycloak-security-headers"]["headers"]
    assert strict["frameDeny"] is True
    assert "'unsafe-inline'" not in strict["contentSecurityPolicy"].split("script-src")[1].split(";")[0]
    assert relaxed["frameDeny"] is False
    assert "script-src 'self' 'unsafe-inline'" in relaxed["contentSecurityPolicy"]
    assert strict["stsSeconds"] == 31536000


def test_output_is_invariant_under_route_permutation(prod_settings, resolved_config) -> None:
    routes = [_route("demo", 4180), _route("docs"), _route("dozzle", 4180)]
    service = RoutingService(prod_settings)
    expected = service.generate_yaml(resolved_config, routes)

    for permutation in itertools.permutations(routes):
        assert service.generate_yaml(resolved_config, list(permutation)) == expected


def test_routes_emitted_sorted_by_host(local_settings, resolved_config) -> None:
    routes = [_route("zeta"), _route("alpha"), _route("mid")]
    routers = RoutingService(local_settings).generate(resolved_config, routes)["http"]["routers"]

    host_routers = [name for name in routers if name.startswith("host-")]
    assert host_routers == ["host-alpha", "host-mid", "host-zeta"]


def test_route_hosts_with_digits_sort_per_character(local_settings, resolved_config) -> None:
    routes = [_route("app2"), _route("app10")]
    routers = RoutingService(local_settings).generate(resolved_config, routes)["http"]["routers"]

    host_routers = [name for name in routers if name.startswith("host-")]
    assert host_routers == ["host-app10", "host-app2"]


def test_invalid_routes_abort_with_every_problem(local_settings, resolved_config) -> None:
    routes = [_route("app"), _route("app"), _route("Bad"), _route("portal")]

    with pytest.raises(RouteValidationError) as exc_info:
        RoutingService(local_settings).generate(resolved_config, routes)

    assert len(exc_info.value.problems) == 3
    assert str(exc_info.value).startswith("Invalid route requests:")


def test_validate_route_requests_accepts_clean_list() -> None:
    assert validate_route_requests([_route("demo"), _route("docs")]) == []


def test_build_route_requests_points_protected_services_at_sidecar(local_settings, resolved_config) -> None:
    routes = {r.host: r.upstream for r in RoutingService(local_settings).build_route_requests(resolved_config)}

    assert routes["demo"].address == "local-stackgen-demo-oauth2-proxy"
    assert routes["demo"].port == 4180
    assert routes["docs"].address == "local-stackgen-docs"
    assert routes["docs"].port == 80


def test_yaml_round_trips(local_settings, resolved_config) -> None:
    service = RoutingService(local_settings)
    text = service.generate_yaml(resolved_config, [_route("docs")])

    assert yaml.safe_load(text) == service.generate(resolved_config, [_route("docs")])
