import time
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, unquote, urlsplit

import jwt as pyjwt
import pytest
import requests

from stackgen.lib.config import PortalSettings
from stackgen.models.resolved import ResolvedDeploymentConfig, ResolvedServiceConfig
from stackgen.services.descriptor_service import DescriptorService
from stackgen.services.logout_service import (
    CascadeState,
    LogoutCascade,
    LogoutCoordinator,
    ServiceProber,
    is_id_token_usable,
)

TOKEN_KEY = "test-signing-key-with-enough-length-for-hs256"


class FakeProber:
    def __init__(self, unreachable=()):
        self.unreachable = set(unreachable)
        self.probed = []

    def is_reachable(self, service_url: str) -> bool:
        self.probed.append(service_url)
        return urlsplit(service_url).hostname.split(".")[0] not in self.unreachable


def _token(exp_offset: int) -> str:
    return pyjwt.encode({"sub": "alice", "exp": int(time.time()) + exp_offset}, TOKEN_KEY, algorithm="HS256")


def _service(service_id: str, roles=("dev",)) -> ResolvedServiceConfig:
    return ResolvedServiceConfig(
        service_id=service_id,
        display_name=service_id,
        host=service_id,
        auth_type="proxy-auth" if roles else "none",
        required_roles=list(roles),
    )


@pytest.fixture
def descriptor(local_settings):
    config = ResolvedDeploymentConfig(
        environment_name="local",
        roles=["dev"],
        services=[_service("alpha"), _service("bravo"), _service("charlie"), _service("docs", roles=())],
    )
    return DescriptorService(local_settings).generate(config)


@pytest.fixture
def portal_settings(local_settings) -> PortalSettings:
    return PortalSettings.from_stack(local_settings)


def test_work_list_ignores_unprotected_services(portal_settings, descriptor) -> None:
    coordinator = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber())

    assert [s.id for s in coordinator.work_list] == ["alpha", "bravo", "charlie"]


def test_cascade_skips_unreachable_service(portal_settings, descriptor) -> None:
    prober = FakeProber(unreachable={"bravo"})
    trace = LogoutCascade(LogoutCoordinator(portal_settings, descriptor, prober=prober)).run()

    assert len(trace.navigations) == 2
    assert trace.skipped == ["bravo"]
    assert trace.navigations[0].startswith("http://alpha.localhost/oauth2/sign_out?rd=")
    assert trace.navigations[1].startswith("http://charlie.localhost/oauth2/sign_out?rd=")
    assert trace.end_session_url.startswith(
        "http://keycloak.localhost/realms/stackgen/protocol/openid-connect/logout?"
    )


def test_first_hop_redirects_to_first_service(portal_settings, descriptor) -> None:
    step = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber()).step()

    assert step.next_service_id == "alpha"
    assert step.states == [CascadeState.CLEAR_LOCAL, CascadeState.PROBE_NEXT, CascadeState.REDIRECT_TO_SERVICE]
    assert step.clear_cookies == ["access_token", "oauth_state"]
    rd = parse_qs(urlsplit(step.redirect_url).query)["rd"][0]
    assert rd == "http://portal.localhost/auth/logout?serviceId=alpha"


def test_continuation_resumes_after_last_service(portal_settings, descriptor) -> None:
    prober = FakeProber()
    step = LogoutCoordinator(portal_settings, descriptor, prober=prober).step("bravo")

    assert step.next_service_id == "charlie"
    assert prober.probed == ["http://charlie.localhost"]


def test_last_hop_clears_id_token_and_ends_session(portal_settings, descriptor) -> None:
    step = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber()).step("charlie")

    assert step.done
    assert step.states == [CascadeState.CLEAR_LOCAL, CascadeState.DONE]
    assert step.clear_cookies == ["access_token", "oauth_state", "id_token"]
    query = parse_qs(urlsplit(step.redirect_url).query)
    assert query["client_id"] == ["portal"]
    assert query["post_logout_redirect_uri"] == ["http://portal.localhost/auth/logout/complete"]


def test_unknown_service_id_restarts(portal_settings, descriptor) -> None:
    step = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber()).step("nope")

    assert step.next_service_id == "alpha"


def test_all_unreachable_still_reaches_identity_provider(portal_settings, descriptor) -> None:
    prober = FakeProber(unreachable={"alpha", "bravo", "charlie"})
    step = LogoutCoordinator(portal_settings, descriptor, prober=prober).step()

    assert step.done
    assert step.skipped == ["alpha", "bravo", "charlie"]
    assert step.states.count(CascadeState.SKIP_SERVICE) == 3


def test_production_without_internal_proxy_skips_probes(local_settings, descriptor) -> None:
    settings = PortalSettings.from_stack(local_settings, environment="prod")
    prober = FakeProber()
    step = LogoutCoordinator(settings, descriptor, prober=prober).step()

    assert step.done
    assert prober.probed == []


def test_production_with_internal_proxy_probes(local_settings, descriptor) -> None:
    settings = PortalSettings.from_stack(
        local_settings, environment="prod", traefik_internal_url="http://traefik"
    )
    step = LogoutCoordinator(settings, descriptor, prober=FakeProber()).step()

    assert step.next_service_id == "alpha"


def test_end_session_uses_valid_id_token(portal_settings, descriptor) -> None:
    token = _token(3600)
    url = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber()).end_session_url(token)
    query = parse_qs(urlsplit(url).query)

    assert query["id_token_hint"] == [token]
    assert "client_id" not in query


def test_id_token_usability() -> None:
    assert is_id_token_usable(_token(3600))
    assert is_id_token_usable(_token(-2))
    assert not is_id_token_usable(_token(-60))
    assert not is_id_token_usable("not-a-jwt")
    assert not is_id_token_usable("")
    assert not is_id_token_usable(None)


@patch("stackgen.services.logout_service.requests.head")
def test_prober_any_response_is_reachable(mock_head) -> None:
    mock_head.return_value = MagicMock(status_code=500)
    prober = ServiceProber(300, 750)

    assert prober.is_reachable("http://demo.localhost") is True
    args, kwargs = mock_head.call_args
    assert args[0] == "http://demo.localhost"
    assert kwargs["timeout"] == (0.3, 0.75)
    assert kwargs["allow_redirects"] is False


@patch("stackgen.services.logout_service.requests.head")
def test_prober_network_error_is_unreachable(mock_head) -> None:
    mock_head.side_effect = requests.ConnectTimeout("timed out")

    assert ServiceProber(300, 750).is_reachable("http://demo.localhost") is False
    assert mock_head.call_count == 1


@patch("stackgen.services.logout_service.requests.head")
def test_prober_through_internal_proxy(mock_head) -> None:
    mock_head.return_value = MagicMock(status_code=404)
    prober = ServiceProber(300, 750, traefik_internal_url="http://traefik:80")

    assert prober.is_reachable("https://demo.example.com:8443") is False
    args, kwargs = mock_head.call_args
    assert args[0] == "http://traefik:80"
    assert kwargs["headers"] == {"Host": "demo.example.com"}

    mock_head.return_value = MagicMock(status_code=302)
    assert prober.is_reachable("https://demo.example.com") is True


def test_sign_out_url_encodes_continuation(portal_settings, descriptor) -> None:
    coordinator = LogoutCoordinator(portal_settings, descriptor, prober=FakeProber())
    url = coordinator.sign_out_url(coordinator.work_list[0])

    assert url == (
        "http://alpha.localhost/oauth2/sign_out?rd="
        "http%3A%2F%2Fportal.localhost%2Fauth%2Flogout%3FserviceId%3Dalpha"
    )
    assert unquote(url.split("rd=")[1]) == "http://portal.localhost/auth/logout?serviceId=alpha"
