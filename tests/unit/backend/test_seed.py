"""
Unit tests for scripts.seed
"""

import pytest
from sqlalchemy import func, select

from backend.models.app_sso_provider import AppSsoProvider
from scripts.seed import upsert_provider


@pytest.mark.asyncio
async def test_upsert_creates_provider_row(db_session):
    record = await upsert_provider(db_session, "google", "Google", "client-1", "secret-1")
    await db_session.commit()

    assert record.id is not None
    assert record.client_id == "client-1"
    assert record.client_secret == "secret-1"


@pytest.mark.asyncio
async def test_upsert_updates_existing_row_in_place(db_session, google_provider):
    record = await upsert_provider(db_session, "google", "Google", "rotated-id", "rotated-secret")
    await db_session.commit()

    assert record.id == google_provider.id
    assert record.client_id == "rotated-id"

    count = await db_session.scalar(select(func.count()).select_from(AppSsoProvider))
    assert count == 1
