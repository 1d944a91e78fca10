"""Shared test fixtures for passport.

Provides a fake identity provider served through :class:`httpx.MockTransport`,
strategy configuration helpers pointing at it, and a ready-made
:class:`~passport.Passport` wired to the fake. Fixtures are discovered by
pytest automatically.
"""

from __future__ import annotations

import base64
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from passport import Passport, Provider, Redirects, StrategyConfig
from passport.output import reset_output

AUTH_URL = "https://idp.test/oauth/authorize"
TOKEN_URL = "https://idp.test/oauth/token"
PROFILE_URL = "https://api.idp.test/me"
REDIRECT_URI = "https://app.test/auth/callback"
SUCCESS_URL = "https://app.test/welcome"
FAILURE_URL = "https://app.test/signup"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager so CliRunner streams never leak."""
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


class FakeProvider:
    """Token and profile endpoints of an identity provider, in memory.

    Attributes can be changed per test to script the provider's behaviour.
    Every request received is kept in :attr:`requests`.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: Any = {"access_token": "tok123"}
        self.profile_status = 200
        self.profile_body: Any = {"id": "42"}
        self.require_basic_auth: Optional[tuple[str, str]] = None
        self.token_error: Optional[Callable[[httpx.Request], Exception]] = None
        self.profile_error: Optional[Callable[[httpx.Request], Exception]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == urlsplit(TOKEN_URL).path:
            return self._token(request)
        if request.url.host == urlsplit(PROFILE_URL).hostname:
            return self._profile(request)
        return httpx.Response(404, text="not found")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == urlsplit(TOKEN_URL).path]

    def profile_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == urlsplit(PROFILE_URL).hostname]

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.token_error is not None:
            raise self.token_error(request)
        if request.method != "POST":
            return httpx.Response(405, text="method not allowed")
        if self.require_basic_auth is not None:
            user, password = self.require_basic_auth
            expected = base64.b64encode(f"{user}:{password}".encode()).decode()
            form = form_of(request)
            if request.headers.get("Authorization") != f"Basic {expected}":
                return httpx.Response(401, json={"error": "invalid_client"})
            if "client_secret" in form:
                return httpx.Response(400, json={"error": "unexpected client_secret"})
        if isinstance(self.token_body, (dict, list)):
            return httpx.Response(self.token_status, json=self.token_body)
        return httpx.Response(self.token_status, text=str(self.token_body))

    def _profile(self, request: httpx.Request) -> httpx.Response:
        if self.profile_error is not None:
            raise self.profile_error(request)
        if isinstance(self.profile_body, (dict, list)):
            return httpx.Response(self.profile_status, json=self.profile_body)
        return httpx.Response(self.profile_status, text=str(self.profile_body))


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode("utf-8"))
    return {key: values[0] for key, values in parsed.items()}


def query_of(url: str) -> dict[str, str]:
    """Decode the query string of *url* into a flat dict."""
    parsed = parse_qs(urlsplit(url).query)
    return {key: values[0] for key, values in parsed.items()}


def make_strategy_config(**overrides: Any) -> StrategyConfig:
    """Build a StrategyConfig pointing at the fake provider."""
    values: dict[str, Any] = {
        "client_id": "cid",
        "client_secret": "csecret",
        "scopes": ["profile", "email"],
        "redirect_uri": REDIRECT_URI,
        "authorization_url": AUTH_URL,
        "token_url": TOKEN_URL,
        "profile_url": PROFILE_URL,
    }
    values.update(overrides)
    return StrategyConfig(**values)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def redirects() -> Redirects:
    return Redirects(success_url=SUCCESS_URL, failure_url=FAILURE_URL)


@pytest.fixture
def passport(fake_provider: FakeProvider, redirects: Redirects) -> Passport:
    """A Passport with GitHub and Reddit strategies served by the fake provider."""
    instance = Passport(redirects=redirects, transport=fake_provider.transport)
    instance.strategize(Provider.GITHUB, make_strategy_config())
    instance.strategize(Provider.REDDIT, make_strategy_config(scopes=["identity"]))
    yield instance
    instance.close()
