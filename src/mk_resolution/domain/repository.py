"""Repository Protocols for returns, disputes and refund instructions."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_resolution.domain.models import Dispute, RefundInstruction, Return


class ReturnRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, ret: Return) -> None: ...

    async def get(self, db: AsyncSession, return_id: str) -> Return | None: ...

    async def find_open_for_order(self, db: AsyncSession, order_id: str) -> Return | None: ...

    async def compare_and_set(self, db: AsyncSession, ret: Return, expected: str) -> bool: ...

    async def set_tracking(
        self, db: AsyncSession, return_id: str, tracking_number: str
    ) -> Return | None: ...

    async def list(
        self,
        db: AsyncSession,
        buyer_id: str | None,
        seller_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Return]: ...


class DisputeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, dispute: Dispute) -> None: ...

    async def get(self, db: AsyncSession, dispute_id: str) -> Dispute | None: ...

    async def compare_and_set(self, db: AsyncSession, dispute: Dispute, expected: str) -> bool: ...

    async def list(
        self,
        db: AsyncSession,
        party_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Dispute]: ...


class RefundInstructionRepositoryProtocol(Protocol):
    async def insert_once(
        self, db: AsyncSession, instruction: RefundInstruction
    ) -> RefundInstruction | None: ...

    async def record_debit(
        self, db: AsyncSession, instruction_id: str, seller_debited: int, shortfall: int
    ) -> None: ...

    async def mark_sent(self, db: AsyncSession, instruction_id: str) -> None: ...

    async def get_by_return(
        self, db: AsyncSession, return_id: str
    ) -> RefundInstruction | None: ...
