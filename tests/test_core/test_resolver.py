"""Tests for callback resolution and the authenticate() redirect mapping."""

from __future__ import annotations

import logging

import httpx
import pytest

from conftest import (
    FAILURE_URL,
    REDIRECT_URI,
    SUCCESS_URL,
    FakeProvider,
    form_of,
    make_strategy_config,
    query_of,
)
from passport import (
    CallbackParameters,
    CsrfTokenMismatchError,
    ExchangeFailedError,
    MissingAuthorizationCodeAndCsrfTokenError,
    MissingAuthorizationCodeError,
    MissingCsrfTokenError,
    Passport,
    ProfileFetchFailedError,
    Provider,
    Redirects,
    UnregisteredProviderError,
)
from passport.models import DEFAULT_USER_AGENT


def _issue_state(passport: Passport, provider: Provider = Provider.GITHUB) -> str:
    return query_of(passport.redirect_url(provider))["state"]


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------


class TestParameterValidation:
    def test_both_missing(self, passport: Passport) -> None:
        with pytest.raises(MissingAuthorizationCodeAndCsrfTokenError):
            passport.resolve(Provider.GITHUB, CallbackParameters())

    def test_state_missing(self, passport: Passport) -> None:
        with pytest.raises(MissingCsrfTokenError):
            passport.resolve(Provider.GITHUB, CallbackParameters(code="abc"))

    def test_code_missing(self, passport: Passport) -> None:
        with pytest.raises(MissingAuthorizationCodeError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state="xyz"))

    def test_code_missing_keeps_session(self, passport: Passport) -> None:
        """A cancelled login does not burn the pending attempt."""
        state = _issue_state(passport)
        with pytest.raises(MissingAuthorizationCodeError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state))
        assert state in passport.sessions

    def test_blank_values_count_as_missing(self, passport: Passport) -> None:
        with pytest.raises(MissingAuthorizationCodeAndCsrfTokenError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state="", code=""))

    def test_no_network_call_on_invalid_parameters(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        with pytest.raises(MissingCsrfTokenError):
            passport.resolve(Provider.GITHUB, CallbackParameters(code="abc"))
        assert fake_provider.requests == []


# ---------------------------------------------------------------------------
# Session lookup
# ---------------------------------------------------------------------------


class TestSessionLookup:
    def test_unknown_state_is_mismatch(self, passport: Passport) -> None:
        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state="forged", code="c"))

    @pytest.mark.parametrize("provider", [Provider.GITHUB, Provider.REDDIT])
    def test_unknown_state_is_mismatch_for_every_provider(
        self, passport: Passport, provider: Provider
    ) -> None:
        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(provider, CallbackParameters(state="forged", code="c"))

    def test_mismatch_message_has_no_partial_match_detail(self, passport: Passport) -> None:
        state = _issue_state(passport)
        with pytest.raises(CsrfTokenMismatchError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state[:-1], code="c"))
        assert str(exc_info.value) == "CsrfToken supplied does not match"

    def test_state_is_single_use_after_success(self, passport: Passport) -> None:
        state = _issue_state(passport)
        passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

    def test_state_issued_for_other_provider_is_mismatch(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        state = _issue_state(passport, Provider.REDDIT)
        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert fake_provider.requests == []
        # consumed either way
        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.REDDIT, CallbackParameters(state=state, code="c"))

    def test_unregistered_provider_is_fatal(self, passport: Passport) -> None:
        with pytest.raises(UnregisteredProviderError):
            passport.resolve(Provider.GOOGLE, CallbackParameters(state="s", code="c"))


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestStandardExchange:
    def test_scenario_a(self, passport: Passport) -> None:
        state = _issue_state(passport)
        result = passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="any"))

        assert result.profile == {"id": "42", "access_token": "tok123", "refresh_token": None}
        assert result.access_token.get_secret_value() == "tok123"
        assert result.refresh_token is None
        assert result.provider is Provider.GITHUB

    def test_token_request_carries_code_verifier_and_credentials(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        url = passport.redirect_url(Provider.GITHUB)
        state = query_of(url)["state"]
        attempt = passport.sessions.peek(state)
        assert attempt is not None

        passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="the-code"))

        (token_request,) = fake_provider.token_requests()
        form = form_of(token_request)
        assert form == {
            "grant_type": "authorization_code",
            "code": "the-code",
            "redirect_uri": REDIRECT_URI,
            "code_verifier": attempt.pkce_verifier,
            "client_id": "cid",
            "client_secret": "csecret",
        }
        assert token_request.headers["Accept"] == "application/json"
        assert "Authorization" not in token_request.headers

    def test_profile_request_uses_bearer_and_user_agent(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        state = _issue_state(passport)
        passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

        (profile_request,) = fake_provider.profile_requests()
        assert profile_request.method == "GET"
        assert profile_request.headers["Authorization"] == "Bearer tok123"
        assert profile_request.headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_refresh_token_is_injected(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_body = {"access_token": "a1", "refresh_token": "r1", "expires_in": 3600}
        fake_provider.profile_body = {"login": "octocat", "id": 1}
        state = _issue_state(passport)

        result = passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

        assert result.profile == {
            "login": "octocat",
            "id": 1,
            "access_token": "a1",
            "refresh_token": "r1",
        }
        assert result.refresh_token is not None
        assert result.refresh_token.get_secret_value() == "r1"

    def test_result_repr_hides_tokens(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_body = {"access_token": "very-secret", "refresh_token": "also-secret"}
        state = _issue_state(passport)
        result = passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert "very-secret" not in repr(result)
        assert "also-secret" not in repr(result)
        assert "very-secret" not in str(result)


class TestRedditExchange:
    def test_scenario_b(self, passport: Passport, fake_provider: FakeProvider) -> None:
        fake_provider.require_basic_auth = ("cid", "csecret")
        state = _issue_state(passport, Provider.REDDIT)

        result = passport.resolve(Provider.REDDIT, CallbackParameters(state=state, code="c"))

        assert result.profile == {"id": "42", "access_token": "tok123", "refresh_token": None}

    def test_form_body_has_no_client_credentials(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        state = _issue_state(passport, Provider.REDDIT)
        attempt = passport.sessions.peek(state)
        assert attempt is not None

        passport.resolve(Provider.REDDIT, CallbackParameters(state=state, code="c"))

        (token_request,) = fake_provider.token_requests()
        assert token_request.headers["Authorization"].startswith("Basic ")
        assert form_of(token_request) == {
            "grant_type": "authorization_code",
            "code": "c",
            "redirect_uri": REDIRECT_URI,
            "code_verifier": attempt.pkce_verifier,
        }

    def test_standard_provider_fails_against_basic_only_endpoint(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.require_basic_auth = ("cid", "csecret")
        state = _issue_state(passport, Provider.GITHUB)
        with pytest.raises(ExchangeFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status == 401


# ---------------------------------------------------------------------------
# Upstream failures
# ---------------------------------------------------------------------------


class TestExchangeFailures:
    def test_scenario_c(self, passport: Passport, fake_provider: FakeProvider) -> None:
        fake_provider.token_status = 400
        fake_provider.token_body = {"error": "invalid_grant"}
        state = _issue_state(passport)

        with pytest.raises(ExchangeFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status == 400
        assert "invalid_grant" in exc_info.value.body

        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

    def test_upstream_body_not_in_message(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_status = 500
        fake_provider.token_body = "internal stack trace"
        state = _issue_state(passport)
        with pytest.raises(ExchangeFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert "stack trace" not in str(exc_info.value)
        assert exc_info.value.body == "internal stack trace"

    def test_error_payload_with_200_status(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_body = {"error": "bad_verification_code"}
        state = _issue_state(passport)
        with pytest.raises(ExchangeFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status == 200

    def test_non_json_token_response(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_body = "access_token=abc&scope=user"
        state = _issue_state(passport)
        with pytest.raises(ExchangeFailedError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

    def test_timeout_is_exchange_failure_without_retry(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_error = lambda request: httpx.ReadTimeout(
            "timed out", request=request
        )
        state = _issue_state(passport)
        with pytest.raises(ExchangeFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status is None
        assert len(fake_provider.token_requests()) == 1
        assert fake_provider.profile_requests() == []

    def test_connection_error_is_exchange_failure(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.token_error = lambda request: httpx.ConnectError(
            "connection refused", request=request
        )
        state = _issue_state(passport)
        with pytest.raises(ExchangeFailedError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))


class TestProfileFailures:
    def test_non_2xx_profile(self, passport: Passport, fake_provider: FakeProvider) -> None:
        fake_provider.profile_status = 403
        fake_provider.profile_body = {"message": "Forbidden"}
        state = _issue_state(passport)

        with pytest.raises(ProfileFetchFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status == 403
        assert "Forbidden" in exc_info.value.body

        with pytest.raises(CsrfTokenMismatchError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))

    def test_profile_timeout(self, passport: Passport, fake_provider: FakeProvider) -> None:
        fake_provider.profile_error = lambda request: httpx.ReadTimeout(
            "timed out", request=request
        )
        state = _issue_state(passport)
        with pytest.raises(ProfileFetchFailedError) as exc_info:
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert exc_info.value.status is None

    def test_profile_must_be_an_object(
        self, passport: Passport, fake_provider: FakeProvider
    ) -> None:
        fake_provider.profile_body = ["not", "an", "object"]
        state = _issue_state(passport)
        with pytest.raises(ProfileFetchFailedError):
            passport.resolve(Provider.GITHUB, CallbackParameters(state=state, code="c"))


# ---------------------------------------------------------------------------
# authenticate()
# ---------------------------------------------------------------------------


class TestAuthenticate:
    def test_success_targets_success_url(self, passport: Passport) -> None:
        state = _issue_state(passport)
        result, target = passport.authenticate(
            Provider.GITHUB, CallbackParameters(state=state, code="c")
        )
        assert result is not None
        assert result.profile["id"] == "42"
        assert target == SUCCESS_URL

    def test_failure_targets_failure_url(self, passport: Passport) -> None:
        result, target = passport.authenticate(Provider.GITHUB, CallbackParameters())
        assert result is None
        assert target == FAILURE_URL

    def test_upstream_failure_is_logged_not_leaked(
        self,
        passport: Passport,
        fake_provider: FakeProvider,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fake_provider.token_status = 400
        fake_provider.token_body = {"error": "invalid_grant", "detail": "secret-ish detail"}
        state = _issue_state(passport)

        with caplog.at_level(logging.DEBUG, logger="passport"):
            result, target = passport.authenticate(
                Provider.GITHUB, CallbackParameters(state=state, code="c")
            )

        assert result is None
        assert target == FAILURE_URL
        assert "secret-ish" not in target
        assert "exchange_failed" in caplog.text
        assert "secret-ish detail" in caplog.text

    def test_secrets_never_logged(
        self,
        passport: Passport,
        fake_provider: FakeProvider,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fake_provider.token_body = {"access_token": "tok-xyz", "refresh_token": "ref-xyz"}
        with caplog.at_level(logging.DEBUG, logger="passport"):
            state = _issue_state(passport)
            passport.authenticate(Provider.GITHUB, CallbackParameters(state=state, code="c"))
        assert state not in caplog.text
        assert "csecret" not in caplog.text
        assert "tok-xyz" not in caplog.text
        assert "ref-xyz" not in caplog.text

    def test_strategy_failure_redirect_wins(
        self, passport: Passport
    ) -> None:
        passport.strategize(
            Provider.DISCORD,
            make_strategy_config(failure_redirect_uri="https://app.test/discord-failed"),
        )
        _, target = passport.authenticate(Provider.DISCORD, CallbackParameters(code="c"))
        assert target == "https://app.test/discord-failed"

    def test_per_call_redirects(self, passport: Passport) -> None:
        custom = Redirects(success_url="https://other.test/ok", failure_url="https://other.test/no")
        _, target = passport.authenticate(
            Provider.GITHUB, CallbackParameters(state="nope", code="c"), custom
        )
        assert target == "https://other.test/no"

    def test_unregistered_provider_propagates(self, passport: Passport) -> None:
        with pytest.raises(UnregisteredProviderError):
            passport.authenticate(Provider.FACEBOOK, CallbackParameters())
