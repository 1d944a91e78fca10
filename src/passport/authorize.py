"""Authorization URL construction.

:class:`AuthorizationUrlBuilder` turns a provider identifier into the URL
the host redirects the browser to. Every call issues a new authorization
attempt: a fresh PKCE pair and ``state`` secret, with the verifier filed in
the :class:`~passport.sessions.SessionStore` before the URL is returned so a
fast callback always finds it.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from passport.models import Strategy
from passport.pkce import CODE_CHALLENGE_METHOD, fingerprint, generate_pkce_pair, generate_state
from passport.providers import Provider
from passport.registry import StrategyRegistry
from passport.sessions import SessionStore

logger = logging.getLogger(__name__)


def compose_authorization_url(
    strategy: Strategy, state: str, code_challenge: str
) -> str:
    """Append the authorization request parameters to the strategy's URL.

    Query parameters already on the authorization URL (Microsoft's
    ``prompt=select_account``) are kept; ours come after them.
    """
    params: list[tuple[str, str]] = [
        ("client_id", strategy.client_id),
        ("redirect_uri", strategy.redirect_uri),
        ("response_type", "code"),
    ]
    if strategy.scopes:
        params.append(("scope", strategy.scope_string))
    params.extend(
        [
            ("code_challenge", code_challenge),
            ("code_challenge_method", CODE_CHALLENGE_METHOD),
            ("state", state),
        ]
    )

    parts = urlsplit(strategy.authorization_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


class AuthorizationUrlBuilder:
    """Issue authorization attempts and build their redirect URLs.

    Args:
        registry: Source of strategies.
        sessions: Where pending attempts are filed.
    """

    def __init__(self, registry: StrategyRegistry, sessions: SessionStore) -> None:
        self._registry = registry
        self._sessions = sessions

    def build(self, provider: Provider) -> str:
        """Return a ready-to-redirect authorization URL for *provider*.

        Args:
            provider: A registered provider.

        Returns:
            The authorization URL, carrying ``state`` and the PKCE challenge.

        Raises:
            UnregisteredProviderError: If *provider* has no strategy.
        """
        strategy = self._registry.require(provider)
        code_verifier, code_challenge = generate_pkce_pair()
        state = generate_state()

        self._sessions.issue(state, code_verifier, strategy.provider)
        logger.debug(
            "Issued authorization attempt %s for provider '%s'",
            fingerprint(state),
            strategy.provider,
        )
        return compose_authorization_url(strategy, state, code_challenge)
