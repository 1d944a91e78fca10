"""Prepared OAuth2 client bound to one strategy's endpoints.

:class:`OAuth2Client` performs the two outbound calls of a callback
resolution: the authorization-code exchange against the token endpoint and
the bearer-authenticated profile fetch. It offers two exchange flavours:

- :meth:`OAuth2Client.exchange_code` posts the client credentials in the
  form body, which is what most providers expect.
- :meth:`OAuth2Client.exchange_code_basic` sends the client credentials as
  HTTP Basic auth instead, which Reddit requires.

Choosing between them is the resolver's job, see
:mod:`passport.resolver`. Both share one :class:`httpx.Client` owned by the
:class:`~passport.Passport` facade; httpx clients are safe to share
between threads.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError

from passport.exceptions import ExchangeFailedError, ProfileFetchFailedError
from passport.models import RequestConfig, Strategy

logger = logging.getLogger(__name__)


class TokenSet(BaseModel):
    """Parsed token endpoint response. Unknown fields are kept in ``model_extra``."""

    model_config = ConfigDict(extra="allow")

    access_token: SecretStr
    refresh_token: Optional[SecretStr] = None
    token_type: Optional[str] = None
    expires_in: Optional[float] = None


class OAuth2Client:
    """HTTP client for one strategy's token and profile endpoints.

    Args:
        strategy: The strategy whose endpoints and credentials are used.
        http: Shared httpx client; timeouts are configured on it.
        request_config: Outbound request settings (user agent).
    """

    def __init__(
        self,
        strategy: Strategy,
        http: httpx.Client,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self._strategy = strategy
        self._http = http
        self._request_config = request_config or RequestConfig()

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    def exchange_code(self, code: str, code_verifier: str) -> TokenSet:
        """Exchange an authorization code using form-posted client credentials.

        Args:
            code: Authorization code from the callback.
            code_verifier: The PKCE verifier issued with the attempt.

        Returns:
            The parsed :class:`TokenSet`.

        Raises:
            ExchangeFailedError: On transport errors, timeouts, non-2xx
                responses, or a response without ``access_token``.
        """
        data = self._grant_data(code, code_verifier)
        data["client_id"] = self._strategy.client_id
        data["client_secret"] = self._strategy.client_secret.get_secret_value()
        return self._post_token_request(data, auth=None)

    def exchange_code_basic(self, code: str, code_verifier: str) -> TokenSet:
        """Exchange an authorization code using HTTP Basic client authentication.

        The form body carries only the grant parameters; the client
        credentials travel in the ``Authorization`` header.

        Raises:
            ExchangeFailedError: Same conditions as :meth:`exchange_code`.
        """
        auth = httpx.BasicAuth(
            self._strategy.client_id,
            self._strategy.client_secret.get_secret_value(),
        )
        return self._post_token_request(self._grant_data(code, code_verifier), auth=auth)

    def fetch_profile(self, access_token: str) -> dict[str, Any]:
        """Fetch the user's profile document with a bearer token.

        Args:
            access_token: The access token returned by the exchange.

        Returns:
            The profile JSON object, unmodified.

        Raises:
            ProfileFetchFailedError: On transport errors, timeouts, non-2xx
                responses, or a body that is not a JSON object.
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "User-Agent": self._request_config.user_agent,
        }
        try:
            response = self._http.get(self._strategy.profile_url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProfileFetchFailedError(
                exc.response.status_code, exc.response.text
            ) from exc
        except httpx.HTTPError as exc:
            raise ProfileFetchFailedError(None, str(exc)) from exc

        try:
            profile = response.json()
        except ValueError as exc:
            raise ProfileFetchFailedError(response.status_code, response.text) from exc
        if not isinstance(profile, dict):
            raise ProfileFetchFailedError(response.status_code, response.text)
        return profile

    def _grant_data(self, code: str, code_verifier: str) -> dict[str, str]:
        return {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._strategy.redirect_uri,
            "code_verifier": code_verifier,
        }

    def _post_token_request(
        self, data: dict[str, str], auth: Optional[httpx.Auth]
    ) -> TokenSet:
        headers = {
            "Accept": "application/json",
            "User-Agent": self._request_config.user_agent,
        }
        logger.debug(
            "Exchanging authorization code at %s for provider '%s'",
            self._strategy.token_url,
            self._strategy.provider,
        )
        try:
            response = self._http.post(
                self._strategy.token_url, data=data, headers=headers, auth=auth
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExchangeFailedError(
                exc.response.status_code, exc.response.text
            ) from exc
        except httpx.HTTPError as exc:
            raise ExchangeFailedError(None, str(exc)) from exc

        try:
            token_data = response.json()
        except ValueError as exc:
            raise ExchangeFailedError(response.status_code, response.text) from exc
        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise ExchangeFailedError(response.status_code, response.text)
        try:
            return TokenSet.model_validate(token_data)
        except ValidationError as exc:
            raise ExchangeFailedError(response.status_code, response.text) from exc
