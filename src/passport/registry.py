"""Strategy registry -- maps providers to strategies and prepared clients.

:class:`StrategyRegistry` is the lookup table every other component reads
from. Registration validates the strategy's URLs before anything is
installed, then swaps in the strategy and its
:class:`~passport.client.OAuth2Client` together, so a provider is either
fully usable or not present at all.

Lookups take a shared read lock and never block each other; registration
takes the lock exclusively for the duration of two dict assignments.

See Also:
    :class:`~passport.authorize.AuthorizationUrlBuilder` and
    :class:`~passport.resolver.CallbackResolver` -- the readers.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from passport.client import OAuth2Client
from passport.exceptions import UnregisteredProviderError
from passport.models import RequestConfig, Strategy, StrategyConfig, ensure_absolute_url
from passport.providers import Provider

logger = logging.getLogger(__name__)


def _coerce(provider: object) -> Optional[Provider]:
    """Normalize a provider name such as ``"GitHub"``; ``None`` if unknown."""
    try:
        return Provider(provider)
    except ValueError:
        return None


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so registrations cannot starve.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class StrategyRegistry:
    """Registry of strategies and their prepared OAuth2 clients.

    Args:
        http: Shared httpx client handed to every prepared
            :class:`~passport.client.OAuth2Client`.
        request_config: Outbound request settings for the prepared clients.

    Example::

        registry = StrategyRegistry(httpx.Client(timeout=30))
        registry.register(Provider.GITHUB, StrategyConfig(...))
        strategy = registry.require(Provider.GITHUB)
    """

    def __init__(
        self,
        http: httpx.Client,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self._http = http
        self._request_config = request_config or RequestConfig()
        self._lock = ReadWriteLock()
        self._strategies: dict[Provider, Strategy] = {}
        self._clients: dict[Provider, OAuth2Client] = {}

    def register(self, provider: Provider, config: StrategyConfig) -> Strategy:
        """Validate *config* and install it for *provider*.

        A previous registration for the same provider is replaced.

        Args:
            provider: The provider identifier.
            config: Host-supplied strategy settings.

        Returns:
            The installed :class:`~passport.models.Strategy`.

        Raises:
            InvalidUrlError: If the authorization, token, profile, redirect
                or failure-redirect URL does not parse as an absolute URL.
                Nothing is installed in that case.
        """
        strategy = Strategy.from_config(provider, config)
        ensure_absolute_url("authorization_url", strategy.authorization_url)
        ensure_absolute_url("token_url", strategy.token_url)
        ensure_absolute_url("profile_url", strategy.profile_url)
        ensure_absolute_url("redirect_uri", strategy.redirect_uri)
        if strategy.failure_redirect_uri is not None:
            ensure_absolute_url("failure_redirect_uri", strategy.failure_redirect_uri)

        client = OAuth2Client(strategy, self._http, self._request_config)
        with self._lock.write():
            replaced = strategy.provider in self._strategies
            self._strategies[strategy.provider] = strategy
            self._clients[strategy.provider] = client

        logger.info(
            "%s strategy for provider '%s' (client_id=%s, scopes=%s)",
            "Replaced" if replaced else "Registered",
            strategy.provider,
            strategy.client_id,
            strategy.scope_string or "-",
        )
        return strategy

    def unregister(self, provider: Provider) -> bool:
        """Remove the strategy for *provider*. Returns whether one was present."""
        provider = Provider(provider)
        with self._lock.write():
            self._clients.pop(provider, None)
            removed = self._strategies.pop(provider, None) is not None
        if removed:
            logger.info("Unregistered strategy for provider '%s'", provider)
        return removed

    def lookup(self, provider: Provider) -> Optional[Strategy]:
        """Return the strategy for *provider*, or ``None`` if unregistered."""
        with self._lock.read():
            return self._strategies.get(_coerce(provider))

    def require(self, provider: Provider) -> Strategy:
        """Return the strategy for *provider*.

        Raises:
            UnregisteredProviderError: If no strategy is registered.
        """
        return self.prepared(provider)[0]

    def client(self, provider: Provider) -> OAuth2Client:
        """Return the prepared client for *provider*.

        Raises:
            UnregisteredProviderError: If no strategy is registered.
        """
        return self.prepared(provider)[1]

    def prepared(self, provider: Provider) -> tuple[Strategy, OAuth2Client]:
        """Return the strategy and client for *provider* from one consistent read.

        Raises:
            UnregisteredProviderError: If no strategy is registered.
        """
        key = _coerce(provider)
        with self._lock.read():
            strategy = self._strategies.get(key)
            client = self._clients.get(key)
        if strategy is None or client is None:
            raise UnregisteredProviderError(provider)
        return strategy, client

    def providers(self) -> list[Provider]:
        """Return the registered providers, sorted by name."""
        with self._lock.read():
            return sorted(self._strategies, key=lambda p: p.value)

    def __contains__(self, provider: object) -> bool:
        with self._lock.read():
            return _coerce(provider) in self._strategies

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._strategies)
