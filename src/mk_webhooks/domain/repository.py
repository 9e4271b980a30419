from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession


class WebhookEventRepositoryProtocol(Protocol):
    async def record_once(
        self,
        db: AsyncSession,
        source: str,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> bool: ...
