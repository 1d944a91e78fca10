"""Canonical Pydantic models shared across all passport modules.

The models fall into three groups:

**Strategy models** -- what a host registers per provider:
    :class:`StrategyConfig` (the host-supplied settings) and
    :class:`Strategy` (the settings bound to a provider's endpoints,
    owned by :class:`~passport.registry.StrategyRegistry`).

**Attempt models** -- one authorization attempt from redirect to callback:
    :class:`PendingAttempt`, :class:`CallbackParameters`, and
    :class:`NormalizedResult`.

**Process-wide settings** -- :class:`Redirects`, :class:`SessionConfig`,
    :class:`RequestConfig`, plus the file-backed :class:`StrategySettings`
    and :class:`PassportConfig` read by :mod:`passport.config`.

Client secrets and tokens are held as :class:`~pydantic.SecretStr` so they
never appear in ``repr()``, ``str()`` or JSON dumps.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from passport.exceptions import InvalidUrlError
from passport.providers import Provider, get_endpoints

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 13_2_3 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/13.0.3 "
    "Mobile/15E148 Safari/604.1"
)
"""User agent sent on profile requests; some providers reject requests without one."""


def ensure_absolute_url(field: str, value: Optional[str]) -> str:
    """Check that *value* is an absolute ``http(s)`` URL.

    The input string is returned untouched so that redirect URIs compare
    byte-for-byte with what was registered at the provider.

    Args:
        field: Field name reported in the error.
        value: The URL to check.

    Returns:
        *value* unchanged.

    Raises:
        InvalidUrlError: If *value* is empty, relative, or unparseable.
    """
    if not value:
        raise InvalidUrlError(field, "empty string")
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise InvalidUrlError(field, str(exc)) from exc
    if url.scheme not in ("http", "https"):
        raise InvalidUrlError(field, f"unsupported or missing scheme in '{value}'")
    if not url.host:
        raise InvalidUrlError(field, f"relative URL without a host: '{value}'")
    return value


# --- Strategy ---


class StrategyConfig(BaseModel):
    """Provider configuration supplied by the host application.

    ``authorization_url``, ``token_url`` and ``profile_url`` default to the
    provider's built-in endpoints; set them to point a strategy at a
    self-hosted or mock server.

    Example::

        StrategyConfig(
            client_id="abc",
            client_secret="s3cr3t",
            scopes=["email", "identify"],
            redirect_uri="https://app.example.com/auth/discord",
        )
    """

    client_id: str
    client_secret: SecretStr
    scopes: list[str] = Field(default_factory=list)
    redirect_uri: str
    failure_redirect_uri: Optional[str] = Field(
        default=None,
        description="Where to send the browser when this provider's login fails; "
        "falls back to the process-wide failure URL",
    )
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    profile_url: Optional[str] = None


class Strategy(BaseModel):
    """A :class:`StrategyConfig` bound to a provider and its endpoints.

    Built by :meth:`from_config` and owned by the registry once registered.
    The fields form the uniform capability contract every provider shares.
    """

    model_config = ConfigDict(frozen=True)

    provider: Provider
    client_id: str
    client_secret: SecretStr
    scopes: tuple[str, ...] = ()
    authorization_url: str
    token_url: str
    profile_url: str
    redirect_uri: str
    failure_redirect_uri: Optional[str] = None
    scope_separator: str = " "

    @classmethod
    def from_config(cls, provider: Provider, config: StrategyConfig) -> Strategy:
        """Resolve *config* against the built-in endpoints of *provider*."""
        provider = Provider(provider)
        endpoints = get_endpoints(provider)
        return cls(
            provider=provider,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=tuple(config.scopes),
            authorization_url=config.authorization_url or endpoints.authorization_url,
            token_url=config.token_url or endpoints.token_url,
            profile_url=config.profile_url or endpoints.profile_url,
            redirect_uri=config.redirect_uri,
            failure_redirect_uri=config.failure_redirect_uri,
            scope_separator=endpoints.scope_separator,
        )

    @property
    def scope_string(self) -> str:
        """Scopes joined with the provider's separator."""
        return self.scope_separator.join(self.scopes)


# --- Attempt ---


class PendingAttempt(BaseModel):
    """An issued authorization attempt waiting for its callback."""

    model_config = ConfigDict(frozen=True)

    csrf_secret: str = Field(repr=False)
    pkce_verifier: str = Field(repr=False)
    provider: Provider
    created_at: float = Field(default_factory=time.monotonic)


class CallbackParameters(BaseModel):
    """Query parameters of the provider's redirect back to the host.

    Both fields are optional: a missing ``state`` or ``code`` usually means
    the user cancelled or the provider reported an error.
    """

    model_config = ConfigDict(extra="ignore")

    state: Optional[str] = None
    code: Optional[str] = None

    @field_validator("state", "code", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value:
            return None
        return value

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> CallbackParameters:
        """Build from a parsed query mapping, ignoring unrelated parameters.

        Values may be plain strings or lists of strings (as produced by
        :func:`urllib.parse.parse_qs`); the first list entry wins.
        """
        values: dict[str, Optional[str]] = {}
        for key in ("state", "code"):
            value = query.get(key)
            if isinstance(value, (list, tuple)):
                value = value[0] if value else None
            values[key] = value
        return cls(**values)


class NormalizedResult(BaseModel):
    """Outcome of a successful callback resolution.

    ``profile`` is the provider's document echoed verbatim, with
    ``access_token`` and ``refresh_token`` injected (``refresh_token`` is
    ``None`` when the provider issued none). It is excluded from ``repr``
    because it carries the tokens.
    """

    provider: Provider
    access_token: SecretStr
    refresh_token: Optional[SecretStr] = None
    profile: dict[str, Any] = Field(default_factory=dict, repr=False)


# --- Process-wide settings ---


class Redirects(BaseModel):
    """Where :meth:`~passport.Passport.authenticate` sends the browser."""

    model_config = ConfigDict(frozen=True)

    success_url: str
    failure_url: str

    def validate_urls(self) -> Redirects:
        """Check both URLs, raising :class:`~passport.exceptions.InvalidUrlError`."""
        ensure_absolute_url("success_url", self.success_url)
        ensure_absolute_url("failure_url", self.failure_url)
        return self


class SessionConfig(BaseModel):
    """Bounds on pending authorization attempts held in memory."""

    ttl_seconds: Optional[float] = Field(
        default=600.0, gt=0, description="Seconds an attempt stays valid; None disables expiry"
    )
    max_pending: Optional[int] = Field(
        default=None, ge=1, description="Max attempts held at once; oldest evicted first"
    )


class RequestConfig(BaseModel):
    """Settings for outbound requests to provider endpoints."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)


class StrategySettings(BaseModel):
    """File-backed strategy settings.

    Credentials are given either inline (``client_id`` / ``client_secret``)
    or through a source descriptor such as ``env:GOOGLE_CLIENT_SECRET`` or
    ``file:/run/secrets/google``. See :func:`passport.config.resolve_credential`.
    """

    client_id: Optional[str] = None
    client_id_source: Optional[str] = None
    client_secret: Optional[SecretStr] = None
    client_secret_source: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    redirect_uri: str
    failure_redirect_uri: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    profile_url: Optional[str] = None


class PassportConfig(BaseModel):
    """Top-level configuration file model.

    Example (YAML)::

        redirects:
          success_url: https://app.example.com/welcome
          failure_url: https://app.example.com/signup
        session:
          ttl_seconds: 300
        strategies:
          github:
            client_id: abc
            client_secret_source: env:GITHUB_CLIENT_SECRET
            scopes: [read:user]
            redirect_uri: https://app.example.com/auth/github
    """

    redirects: Optional[Redirects] = None
    session: SessionConfig = Field(default_factory=SessionConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    strategies: dict[Provider, StrategySettings] = Field(default_factory=dict)
