"""Callback resolution -- from the provider's redirect to a normalized result.

:meth:`CallbackResolver.resolve` runs one authorization attempt to
completion:

1. Validate the callback parameters (``state`` and ``code``).
2. Consume the pending attempt for ``state``. From here on the attempt is
   gone whatever happens next, so a captured callback URL cannot be
   replayed.
3. Exchange the code for tokens. Reddit wants HTTP Basic client
   authentication; every other provider gets the form-posted credentials.
4. Fetch the profile with the access token.
5. Inject the tokens into the profile document.

:meth:`CallbackResolver.authenticate` wraps this for hosts that only need a
redirect target: failures are logged and mapped to the failure URL, never
echoed into it.
"""

from __future__ import annotations

import logging
from typing import Optional

from passport.client import OAuth2Client, TokenSet
from passport.exceptions import (
    CsrfTokenMismatchError,
    MissingAuthorizationCodeAndCsrfTokenError,
    MissingAuthorizationCodeError,
    MissingCsrfTokenError,
    ResolveError,
    UpstreamError,
)
from passport.models import CallbackParameters, NormalizedResult, Redirects, Strategy
from passport.pkce import fingerprint
from passport.providers import Provider
from passport.registry import StrategyRegistry
from passport.sessions import SessionStore

logger = logging.getLogger(__name__)

_LOGGED_BODY_LIMIT = 500


def _check_parameters(params: CallbackParameters) -> tuple[str, str]:
    """Return ``(state, code)`` or raise the matching missing-parameter error."""
    if params.state is None and params.code is None:
        raise MissingAuthorizationCodeAndCsrfTokenError()
    if params.state is None:
        raise MissingCsrfTokenError()
    if params.code is None:
        raise MissingAuthorizationCodeError()
    return params.state, params.code


def _exchange(
    strategy: Strategy, client: OAuth2Client, code: str, code_verifier: str
) -> TokenSet:
    # Reddit rejects form-posted client credentials; it only accepts
    # HTTP Basic client authentication on its token endpoint.
    if strategy.provider is Provider.REDDIT:
        return client.exchange_code_basic(code, code_verifier)
    return client.exchange_code(code, code_verifier)


class CallbackResolver:
    """Resolve provider callbacks against pending authorization attempts.

    Args:
        registry: Source of strategies and prepared clients.
        sessions: Store of pending attempts; entries are consumed here.
    """

    def __init__(self, registry: StrategyRegistry, sessions: SessionStore) -> None:
        self._registry = registry
        self._sessions = sessions

    def resolve(self, provider: Provider, params: CallbackParameters) -> NormalizedResult:
        """Resolve one callback into tokens and a profile.

        Args:
            provider: The provider the callback came from.
            params: ``state`` and ``code`` from the callback query.

        Returns:
            The :class:`~passport.models.NormalizedResult`.

        Raises:
            UnregisteredProviderError: If *provider* has no strategy.
            MissingAuthorizationCodeAndCsrfTokenError: Neither parameter given.
            MissingCsrfTokenError: ``state`` missing.
            MissingAuthorizationCodeError: ``code`` missing.
            CsrfTokenMismatchError: ``state`` unknown, expired, already
                used, or issued for another provider.
            ExchangeFailedError: The token endpoint failed or refused.
            ProfileFetchFailedError: The profile endpoint failed or refused.
        """
        strategy, client = self._registry.prepared(provider)
        state, code = _check_parameters(params)

        attempt = self._sessions.consume(state)
        if attempt is None:
            raise CsrfTokenMismatchError()
        if attempt.provider is not strategy.provider:
            logger.warning(
                "State %s was issued for '%s' but returned to '%s'",
                fingerprint(state),
                attempt.provider,
                strategy.provider,
            )
            raise CsrfTokenMismatchError()
        logger.debug(
            "Consumed attempt %s for provider '%s'", fingerprint(state), strategy.provider
        )

        tokens = _exchange(strategy, client, code, attempt.pkce_verifier)
        access_token = tokens.access_token.get_secret_value()
        profile = client.fetch_profile(access_token)

        profile = dict(profile)
        profile["access_token"] = access_token
        profile["refresh_token"] = (
            tokens.refresh_token.get_secret_value() if tokens.refresh_token else None
        )
        logger.info("Resolved authorization attempt for provider '%s'", strategy.provider)
        return NormalizedResult(
            provider=strategy.provider,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            profile=profile,
        )

    def authenticate(
        self,
        provider: Provider,
        params: CallbackParameters,
        redirects: Redirects,
    ) -> tuple[Optional[NormalizedResult], str]:
        """Resolve a callback and pick where to send the browser.

        Args:
            provider: The provider the callback came from.
            params: ``state`` and ``code`` from the callback query.
            redirects: Process-wide success and failure targets.

        Returns:
            ``(result, redirects.success_url)`` on success, or ``(None,
            failure_url)`` on any :class:`~passport.exceptions.ResolveError`,
            where ``failure_url`` is the strategy's own failure redirect when
            set and ``redirects.failure_url`` otherwise.

        Raises:
            UnregisteredProviderError: If *provider* has no strategy.
        """
        strategy = self._registry.require(provider)
        try:
            result = self.resolve(provider, params)
        except ResolveError as exc:
            self._log_failure(strategy, exc)
            return None, strategy.failure_redirect_uri or redirects.failure_url
        return result, redirects.success_url

    @staticmethod
    def _log_failure(strategy: Strategy, exc: ResolveError) -> None:
        logger.warning(
            "Authorization for provider '%s' failed [%s]: %s",
            strategy.provider,
            exc.code,
            exc,
        )
        if isinstance(exc, UpstreamError):
            logger.debug(
                "Upstream response from provider '%s' (status %s): %s",
                strategy.provider,
                exc.status,
                exc.body[:_LOGGED_BODY_LIMIT],
            )
