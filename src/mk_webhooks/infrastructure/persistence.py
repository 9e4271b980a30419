"""webhook_events: one row per (source, event id); the dedupe key for replays."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_RECORD_EVENT_SQL = text("""
    INSERT INTO webhook_events (source, event_id, event_type, payload)
    VALUES (:source, :event_id, :event_type, CAST(:payload AS JSONB))
    ON CONFLICT (source, event_id) DO NOTHING
    RETURNING id
""")


class WebhookEventRepository:
    async def record_once(
        self,
        db: AsyncSession,
        source: str,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> bool:
        """False when the event was already recorded."""
        result = await db.execute(
            _RECORD_EVENT_SQL,
            {
                "source": source,
                "event_id": event_id,
                "event_type": event_type,
                "payload": json.dumps(payload),
            },
        )
        return result.fetchone() is not None
