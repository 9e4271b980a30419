"""Checkout repository Protocols."""

from collections.abc import Sequence
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_checkout.domain.models import Listing, Submission


class ListingCatalogProtocol(Protocol):
    async def get_many(
        self, db: AsyncSession, listing_ids: Sequence[str]
    ) -> dict[str, Listing]: ...


class SubmissionRepositoryProtocol(Protocol):
    async def get(
        self, db: AsyncSession, buyer_id: str, idempotency_key: str
    ) -> Submission | None: ...

    async def insert(self, db: AsyncSession, submission: Submission) -> None: ...


class SubmissionLockProtocol(Protocol):
    async def acquire(self, key: str, owner: str) -> bool: ...

    async def release(self, key: str, owner: str) -> None: ...
