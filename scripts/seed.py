"""
Seed Script

Registers this application's OAuth2 client with each configured identity
provider. Safe to run repeatedly: existing rows are updated in place.

Usage:
    GOOGLE_CLIENT_ID=... GOOGLE_CLIENT_SECRET=... python -m scripts.seed
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import get_settings
from backend.db.session import get_async_session
from backend.models.app_sso_provider import AppSsoProvider

settings = get_settings()


async def upsert_provider(
    db: AsyncSession,
    provider: str,
    name: str,
    client_id: str,
    client_secret: str,
) -> AppSsoProvider:
    """Create or update the AppSsoProvider row for provider."""
    result = await db.execute(select(AppSsoProvider).where(AppSsoProvider.provider == provider))
    record = result.scalar_one_or_none()
    if record is None:
        record = AppSsoProvider(provider=provider, name=name)
        db.add(record)
    record.client_id = client_id
    record.client_secret = client_secret
    await db.flush()
    return record


async def seed():
    """Register the configured providers."""
    async with get_async_session() as db:
        if not (settings.google_client_id and settings.google_client_secret):
            print("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set, nothing to seed")
            return

        google = await upsert_provider(
            db,
            provider="google",
            name="Google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        )
        print(f"SSO provider: {google.provider} (ID: {google.id})")


if __name__ == "__main__":
    asyncio.run(seed())
