"""
Identity Provider Integrations

OAuth2 connectors for the SSO providers the Personal Data Server supports.
"""

from integrations.base import (
    BaseSsoProvider,
    ProviderCredentials,
    ProviderProfile,
    ProviderTokens,
)
from integrations.google import GoogleSso

# Providers addressable as /sso/<provider>
SSO_PROVIDERS: dict[str, type[BaseSsoProvider]] = {
    GoogleSso.provider_name: GoogleSso,
}


def get_sso_provider_class(provider: str) -> type[BaseSsoProvider] | None:
    """Get the provider implementation registered under a name."""
    return SSO_PROVIDERS.get(provider.lower())


__all__ = [
    "BaseSsoProvider",
    "GoogleSso",
    "ProviderCredentials",
    "ProviderProfile",
    "ProviderTokens",
    "SSO_PROVIDERS",
    "get_sso_provider_class",
]
