"""passport -- OAuth2 authorization-code + PKCE login against many providers.

A host application registers one *strategy* per identity provider (Google,
GitHub, Microsoft, Discord, Reddit, Facebook, 42), hands out provider login
redirects, and resolves the provider callbacks into an access token, an
optional refresh token and the user's profile -- or a typed failure.

Typical workflow::

    from passport import CallbackParameters, Passport, Provider, Redirects, StrategyConfig

    passport = Passport(redirects=Redirects(success_url=..., failure_url=...))
    passport.strategize(Provider.GITHUB, StrategyConfig(...))

    url = passport.redirect_url(Provider.GITHUB)          # send the browser here
    result, target = passport.authenticate(               # on the callback
        Provider.GITHUB, CallbackParameters.from_query(query)
    )

Modules:
    passport: The :class:`Passport` facade.
    registry: Strategy registry and prepared clients.
    sessions: Single-use store of pending authorization attempts.
    authorize: Authorization URL construction.
    resolver: Callback resolution (token exchange, profile fetch).
    models: Pydantic models shared across the package.
    providers: Built-in provider identifiers and endpoints.
    exceptions: Error taxonomy.
    config: Config-file loading and credential sources.
    app: The ``passport`` command line tool.
"""

__version__ = "1.0.0"

from passport.exceptions import (  # noqa: E402
    ConfigError,
    CsrfTokenMismatchError,
    ExchangeFailedError,
    InvalidUrlError,
    MissingAuthorizationCodeAndCsrfTokenError,
    MissingAuthorizationCodeError,
    MissingCsrfTokenError,
    PassportError,
    PassportClosedError,
    ProfileFetchFailedError,
    ResolveError,
    UnregisteredProviderError,
)
from passport.models import (  # noqa: E402
    CallbackParameters,
    NormalizedResult,
    PassportConfig,
    Redirects,
    RequestConfig,
    SessionConfig,
    Strategy,
    StrategyConfig,
)
from passport.passport import Passport  # noqa: E402
from passport.providers import Provider, ProviderEndpointSet  # noqa: E402

__all__ = [
    "CallbackParameters",
    "ConfigError",
    "CsrfTokenMismatchError",
    "ExchangeFailedError",
    "InvalidUrlError",
    "MissingAuthorizationCodeAndCsrfTokenError",
    "MissingAuthorizationCodeError",
    "MissingCsrfTokenError",
    "NormalizedResult",
    "Passport",
    "PassportConfig",
    "PassportError",
    "PassportClosedError",
    "ProfileFetchFailedError",
    "Provider",
    "ProviderEndpointSet",
    "Redirects",
    "RequestConfig",
    "ResolveError",
    "SessionConfig",
    "Strategy",
    "StrategyConfig",
    "UnregisteredProviderError",
    "__version__",
]
