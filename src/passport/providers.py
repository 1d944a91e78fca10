"""Built-in identity providers and their OAuth2 endpoints.

:class:`Provider` is the identifier a host uses everywhere a provider has to
be named (registration, redirect generation, callback resolution).
:data:`ENDPOINTS` maps each provider to a frozen
:class:`ProviderEndpointSet` holding its authorization, token and profile
URLs.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict


class Provider(str, enum.Enum):
    """Identity providers with built-in endpoint sets.

    Values are the lowercase names used in configuration files.
    """

    GOOGLE = "google"
    GITHUB = "github"
    MICROSOFT = "microsoft"
    FACEBOOK = "facebook"
    DISCORD = "discord"
    REDDIT = "reddit"
    FORTY_TWO = "fortytwo"

    @classmethod
    def _missing_(cls, value: object) -> Provider | None:
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "").replace("-", "")
            if normalized == "42":
                return cls.FORTY_TWO
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    def __str__(self) -> str:
        return self.value


class ProviderEndpointSet(BaseModel):
    """Static endpoint constants for one provider."""

    model_config = ConfigDict(frozen=True)

    authorization_url: str
    token_url: str
    profile_url: str
    scope_separator: str = " "


_GOOGLE_PERSON_FIELDS = ",".join(
    [
        "names",
        "emailAddresses",
        "phoneNumbers",
        "metadata",
        "nicknames",
        "photos",
        "userDefined",
        "skills",
        "clientData",
        "addresses",
        "birthdays",
        "calendarUrls",
        "events",
        "ageRanges",
        "interests",
        "coverPhotos",
        "biographies",
        "genders",
        "imClients",
        "memberships",
        "locations",
        "miscKeywords",
        "relations",
        "organizations",
        "urls",
        "sipAddresses",
        "occupations",
        "locales",
    ]
)

ENDPOINTS: dict[Provider, ProviderEndpointSet] = {
    Provider.GOOGLE: ProviderEndpointSet(
        authorization_url="https://accounts.google.com/o/oauth2/auth",
        token_url="https://oauth2.googleapis.com/token",
        profile_url=(
            "https://people.googleapis.com/v1/people/me"
            f"?personFields={_GOOGLE_PERSON_FIELDS}"
        ),
    ),
    Provider.MICROSOFT: ProviderEndpointSet(
        authorization_url=(
            "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
            "?prompt=select_account"
        ),
        token_url="https://login.microsoftonline.com/common/oauth2/v2.0/token",
        profile_url="https://graph.microsoft.com/v1.0/me",
    ),
    Provider.GITHUB: ProviderEndpointSet(
        authorization_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        profile_url="https://api.github.com/user",
    ),
    Provider.DISCORD: ProviderEndpointSet(
        authorization_url="https://discord.com/oauth2/authorize",
        token_url="https://discord.com/api/oauth2/token",
        profile_url="https://discord.com/api/users/@me",
    ),
    Provider.FORTY_TWO: ProviderEndpointSet(
        authorization_url="https://api.intra.42.fr/oauth/authorize",
        token_url="https://api.intra.42.fr/oauth/token",
        profile_url="https://api.intra.42.fr/v2/me",
    ),
    Provider.FACEBOOK: ProviderEndpointSet(
        authorization_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url="https://graph.facebook.com/v18.0/oauth/access_token",
        profile_url="https://graph.facebook.com/me",
        scope_separator=",",
    ),
    Provider.REDDIT: ProviderEndpointSet(
        authorization_url="https://www.reddit.com/api/v1/authorize",
        token_url="https://www.reddit.com/api/v1/access_token",
        profile_url="https://oauth.reddit.com/api/v1/me",
    ),
}


def get_endpoints(provider: Provider) -> ProviderEndpointSet:
    """Return the built-in endpoint set for *provider*."""
    return ENDPOINTS[Provider(provider)]
