"""Exception hierarchy for passport.

All exceptions inherit from :class:`PassportError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`passport.exit_codes`
and a stable ``code`` string that shows up in log records. The command line
entry point in :func:`passport.app.main` catches ``PassportError`` and exits
with the matching code.

Subclass hierarchy::

    PassportError (exit 1)
    +-- ConfigError                                   (exit 4)
    |   +-- InvalidUrlError                           (exit 3)
    +-- UnregisteredProviderError                     (exit 2)
    +-- PassportClosedError                           (exit 1)
    +-- ResolveError                                  (exit 5)
        +-- MissingCsrfTokenError
        +-- MissingAuthorizationCodeError
        +-- MissingAuthorizationCodeAndCsrfTokenError
        +-- CsrfTokenMismatchError
        +-- ExchangeFailedError
        +-- ProfileFetchFailedError

:class:`ResolveError` covers everything that can go wrong with a single
authorization attempt. :meth:`passport.Passport.authenticate` turns those
into a failure redirect. Configuration errors and
:class:`UnregisteredProviderError` are never converted; they point at a
broken deployment and must reach the caller.
"""

from __future__ import annotations

from typing import Optional

from passport.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_URL,
    EXIT_INVALID_USAGE,
)


class PassportError(Exception):
    """Base exception for all passport errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    code: str = "passport_error"

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PassportError):
    """Raised for configuration problems (unreadable files, bad credential sources)."""

    exit_code = EXIT_CONFIG_ERROR
    code = "config_error"


class InvalidUrlError(ConfigError):
    """Raised at registration time when a strategy URL does not parse.

    The strategy is not installed when this is raised.

    Args:
        field: Name of the offending field (e.g. ``"redirect_uri"``).
        cause: Parser diagnostic describing why the value was rejected.
    """

    exit_code = EXIT_INVALID_URL
    code = "invalid_url"

    def __init__(self, field: str, cause: str):
        super().__init__(f"Invalid {field}: {cause}")
        self.field = field
        self.cause = cause


class UnregisteredProviderError(PassportError, LookupError):
    """Raised when a provider is used before a strategy was registered for it.

    This only happens with a misconfigured deployment, so it is never turned
    into a failure redirect.
    """

    exit_code = EXIT_INVALID_USAGE
    code = "unregistered_provider"

    def __init__(self, provider: object):
        super().__init__(f"No strategy registered for provider '{provider}'")
        self.provider = provider


class PassportClosedError(PassportError):
    """Raised when a :class:`~passport.Passport` is used after :meth:`close`."""

    code = "passport_closed"

    def __init__(self) -> None:
        super().__init__("Passport has been closed; create a new instance")


class ResolveError(PassportError):
    """Base class for failures of a single authorization attempt."""

    exit_code = EXIT_AUTH_FAILURE
    code = "resolve_error"
    default_message = "Authorization attempt failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class MissingCsrfTokenError(ResolveError):
    """The callback carried an authorization code but no ``state``."""

    code = "missing_csrf_token"
    default_message = "CsrfToken is missing"


class MissingAuthorizationCodeError(ResolveError):
    """The callback carried ``state`` but no code; usually the user cancelled."""

    code = "missing_authorization_code"
    default_message = "Authorization Code is missing"


class MissingAuthorizationCodeAndCsrfTokenError(ResolveError):
    """The callback carried neither ``state`` nor ``code``."""

    code = "missing_authorization_code_and_csrf_token"
    default_message = "Authorization Code and CsrfToken are missing"


class CsrfTokenMismatchError(ResolveError):
    """The ``state`` value is unknown, expired, or was already consumed."""

    code = "csrf_token_mismatch"
    default_message = "CsrfToken supplied does not match"


class UpstreamError(ResolveError):
    """A provider endpoint rejected a request or could not be reached.

    Args:
        status: Upstream HTTP status code, or ``None`` for transport
            failures and timeouts.
        body: Upstream response body or transport diagnostic. Meant for
            logs only; never show it to the end user.
    """

    step = "request"

    def __init__(self, status: Optional[int], body: str):
        if status is None:
            message = f"{self.step} failed: {body}"
        else:
            message = f"{self.step} failed with status {status}"
        super().__init__(message)
        self.status = status
        self.body = body


class ExchangeFailedError(UpstreamError):
    """The token endpoint rejected the code exchange."""

    code = "exchange_failed"
    step = "Token exchange"


class ProfileFetchFailedError(UpstreamError):
    """The profile endpoint rejected the authenticated request."""

    code = "profile_fetch_failed"
    step = "Profile fetch"
