"""
Google SSO Integration

OAuth2 authorization-code login against Google accounts.
"""

from typing import Any

from backend.errors import ProfileFetchError
from integrations.base import BAD_GATEWAY, BaseSsoProvider, ProviderProfile


class GoogleSso(BaseSsoProvider):
    """Google identity provider."""

    provider_name = "google"
    authorize_url = "https://accounts.google.com/o/oauth2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    userinfo_url = "https://www.googleapis.com/oauth2/v2/userinfo"
    scopes = ["openid", "profile", "email"]

    def authorization_params(self, state: str) -> dict[str, str]:
        params = super().authorization_params(state)
        # Ask for a refresh token on every consent
        params["access_type"] = "offline"
        params["prompt"] = "consent"
        return params

    def parse_profile(self, user_info: dict[str, Any]) -> ProviderProfile:
        # v2 userinfo uses "id"/"verified_email", OpenID Connect uses "sub"/"email_verified"
        subject_id = user_info.get("id") or user_info.get("sub")
        if not subject_id:
            raise ProfileFetchError(BAD_GATEWAY, user_info, "Google profile has no subject id")

        verified = user_info.get("verified_email", user_info.get("email_verified", False))

        return ProviderProfile(
            subject_id=str(subject_id),
            email=user_info.get("email"),
            name=user_info.get("name"),
            verified=bool(verified),
            raw_data=user_info,
        )
