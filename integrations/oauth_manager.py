"""
OAuth Token Manager

Encryption at rest and expiry bookkeeping for provider-issued OAuth tokens.
"""

import logging
from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet

logger = logging.getLogger(__name__)


class TokenEncryption:
    """Handles encryption/decryption of OAuth tokens."""

    def __init__(self, encryption_key: str | bytes):
        if isinstance(encryption_key, str):
            encryption_key = encryption_key.encode()
        self.cipher = Fernet(encryption_key)

    def encrypt(self, token: str) -> bytes:
        """Encrypt a token string."""
        return self.cipher.encrypt(token.encode())

    def decrypt(self, encrypted_token: bytes) -> str:
        """Decrypt an encrypted token."""
        return self.cipher.decrypt(encrypted_token).decode()


class OAuthTokenManager:
    """
    Prepares provider tokens for storage.

    Handles:
    - Token encryption at rest
    - Expiry calculation from the provider's reported lifetime
    """

    def __init__(self, encryption_key: str | bytes, default_lifetime_seconds: int = 3600):
        self.encryption = TokenEncryption(encryption_key)
        self.default_lifetime_seconds = default_lifetime_seconds

    def encrypt_tokens(
        self,
        access_token: str,
        refresh_token: str | None = None,
    ) -> tuple[bytes, bytes | None]:
        """
        Encrypt tokens for storage.

        Returns:
            Tuple of (encrypted_access, encrypted_refresh)
        """
        encrypted_access = self.encryption.encrypt(access_token)
        encrypted_refresh = None
        if refresh_token:
            encrypted_refresh = self.encryption.encrypt(refresh_token)
        return encrypted_access, encrypted_refresh

    def decrypt_tokens(
        self,
        encrypted_access: bytes,
        encrypted_refresh: bytes | None = None,
    ) -> tuple[str, str | None]:
        """
        Decrypt stored tokens; the inverse of encrypt_tokens().

        Provider tokens are only kept for later provider calls on the
        user's behalf, so nothing on the login path reads them back.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = self.encryption.decrypt(encrypted_access)
        refresh_token = None
        if encrypted_refresh:
            refresh_token = self.encryption.decrypt(encrypted_refresh)
        return access_token, refresh_token

    def lifetime_seconds(self, expires_in: int | str | None) -> int:
        """Provider lifetime in seconds, falling back to the default when absent or not positive."""
        try:
            seconds = int(expires_in) if expires_in is not None else 0
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric expires_in from provider: {expires_in!r}")
            seconds = 0
        return seconds if seconds > 0 else self.default_lifetime_seconds

    def expires_at(self, lifetime_seconds: int, now: datetime | None = None) -> datetime:
        """Absolute expiry; always in the future for a positive lifetime."""
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=lifetime_seconds)
