"""The :class:`Passport` facade -- the one object a host application holds.

It owns the shared HTTP client and wires the
:class:`~passport.registry.StrategyRegistry`,
:class:`~passport.sessions.SessionStore`,
:class:`~passport.authorize.AuthorizationUrlBuilder` and
:class:`~passport.resolver.CallbackResolver` together. Every operation takes
the provider explicitly; there is no notion of a "current" provider, so one
instance can serve concurrent logins against different providers.

Typical usage in a web handler::

    passport = (
        Passport(redirects=Redirects(success_url=..., failure_url=...))
        .strategize(Provider.GITHUB, StrategyConfig(...))
        .strategize(Provider.GOOGLE, StrategyConfig(...))
    )

    # GET /login/github
    return redirect(passport.redirect_url(Provider.GITHUB))

    # GET /auth/github?state=...&code=...
    params = CallbackParameters.from_query(request.query_params)
    result, target = passport.authenticate(Provider.GITHUB, params)
    if result is not None:
        save_user(result.profile)
    return redirect(target)
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from passport.authorize import AuthorizationUrlBuilder
from passport.config import to_strategy_config
from passport.exceptions import ConfigError, PassportClosedError
from passport.models import (
    CallbackParameters,
    NormalizedResult,
    PassportConfig,
    Redirects,
    RequestConfig,
    SessionConfig,
    StrategyConfig,
)
from passport.providers import Provider
from passport.registry import StrategyRegistry
from passport.resolver import CallbackResolver
from passport.sessions import SessionStore

logger = logging.getLogger(__name__)


class Passport:
    """Register strategies, issue login redirects and resolve callbacks.

    Args:
        redirects: Process-wide success and failure targets used by
            :meth:`authenticate`. Validated on construction.
        session: Bounds on pending attempts (TTL, max count).
        request: Outbound request settings (timeout, SSL, user agent).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Raises:
        InvalidUrlError: If a redirect URL is not an absolute URL.
    """

    def __init__(
        self,
        redirects: Optional[Redirects] = None,
        session: Optional[SessionConfig] = None,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._redirects = redirects.validate_urls() if redirects is not None else None
        self._request_config = request or RequestConfig()
        self._http = httpx.Client(
            timeout=self._request_config.timeout,
            verify=self._request_config.verify_ssl,
            transport=transport,
        )
        self.registry = StrategyRegistry(self._http, self._request_config)
        self.sessions = SessionStore(session)
        self._builder = AuthorizationUrlBuilder(self.registry, self.sessions)
        self._resolver = CallbackResolver(self.registry, self.sessions)
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: PassportConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> Passport:
        """Build a facade from a loaded :class:`~passport.models.PassportConfig`.

        Credential sources are resolved here, so missing environment
        variables surface at startup rather than on the first login.

        Raises:
            ConfigError: If a credential source cannot be resolved.
            InvalidUrlError: If a strategy or redirect URL is invalid.
        """
        passport = cls(
            redirects=config.redirects,
            session=config.session,
            request=config.request,
            transport=transport,
        )
        try:
            for provider, settings in config.strategies.items():
                passport.strategize(provider, to_strategy_config(provider, settings))
        except ConfigError:
            passport.close()
            raise
        logger.info("Configured %d strategies from config", len(config.strategies))
        return passport

    @property
    def redirects(self) -> Optional[Redirects]:
        """Process-wide success and failure targets, if configured."""
        return self._redirects

    def strategize(self, provider: Provider, config: StrategyConfig) -> Passport:
        """Register *config* for *provider* and return ``self`` for chaining.

        Raises:
            InvalidUrlError: If a strategy URL is invalid; nothing is installed.
        """
        self._ensure_open()
        self.registry.register(Provider(provider), config)
        return self

    def redirect_url(self, provider: Provider) -> str:
        """Issue an authorization attempt and return the provider login URL.

        Raises:
            UnregisteredProviderError: If *provider* has no strategy.
        """
        self._ensure_open()
        return self._builder.build(Provider(provider))

    def resolve(self, provider: Provider, params: CallbackParameters) -> NormalizedResult:
        """Resolve a provider callback. See :meth:`CallbackResolver.resolve`."""
        self._ensure_open()
        return self._resolver.resolve(Provider(provider), params)

    def authenticate(
        self,
        provider: Provider,
        params: CallbackParameters,
        redirects: Optional[Redirects] = None,
    ) -> tuple[Optional[NormalizedResult], str]:
        """Resolve a callback into ``(result or None, redirect target)``.

        Args:
            provider: The provider the callback came from.
            params: ``state`` and ``code`` from the callback query.
            redirects: Overrides the process-wide redirects for this call.

        Raises:
            ConfigError: If no redirects were given here or on construction.
            UnregisteredProviderError: If *provider* has no strategy.
            PassportClosedError: If :meth:`close` was already called.
        """
        self._ensure_open()
        targets = redirects.validate_urls() if redirects is not None else self._redirects
        if targets is None:
            raise ConfigError(
                "authenticate() needs success/failure redirects; pass them to "
                "Passport(redirects=...) or to this call"
            )
        return self._resolver.authenticate(Provider(provider), params, targets)

    def close(self) -> None:
        """Close the shared HTTP client and drop pending attempts."""
        self._closed = True
        self._http.close()
        self.sessions.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise PassportClosedError()

    def __enter__(self) -> Passport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
