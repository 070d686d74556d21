"""
Preferences Service

Persistence of the authenticated (server-side) preference set.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models.preferences import Preferences

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PreferencesService:
    """Reads and replaces a user's stored preference document."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: UUID) -> dict[str, Any]:
        """Stored document, or {} if the user never saved preferences."""
        record = await self.db.get(Preferences, user_id, populate_existing=True)
        if record is None:
            return {}
        return record.preferences or {}

    async def save(self, user_id: UUID, document: dict[str, Any]) -> dict[str, Any]:
        """
        Replace the stored document in a single statement.

        Concurrent first saves for the same user cannot collide on the
        primary key: the last one to commit wins.
        """
        insert = UPSERT_INSERTS[self.db.get_bind().dialect.name]
        stmt = insert(Preferences).values(user_id=user_id, preferences=document)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Preferences.user_id],
            set_={
                "preferences": stmt.excluded.preferences,
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)

        logger.debug(f"Saved preferences for user {user_id}")
        return document
