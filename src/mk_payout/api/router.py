"""Wallet REST API: seller balances, ledger, payouts and withdrawals; all require JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_payout.application.schemas import WithdrawRequest
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_payout.domain.models import SellerStanding

router = APIRouter(prefix="/wallet", tags=["wallet"])

_service = PayoutLedgerService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    return success_response(data.model_dump(), request)


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    standing = SellerStanding(
        seller_id=str(current_user.id),
        kyc_status=current_user.kyc_status,
        withdrawal_blocked=current_user.withdrawal_blocked,
        withdrawal_blocked_reason=current_user.withdrawal_blocked_reason,
    )
    data = await _service.withdraw(db, standing, body.amount_cents)
    return success_response(data.model_dump(), request)


@router.get("/ledger")
async def list_ledger(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by BalanceEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(db, str(current_user.id), cursor, limit, entry_type)
    return success_response(data.model_dump(), request)


@router.get("/payouts")
async def list_payouts(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (payout ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_payouts(db, str(current_user.id), limit, cursor)
    return success_response(data.model_dump(), request)


@router.get("/withdrawals")
async def list_withdrawals(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (withdrawal ID)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_withdrawals(db, str(current_user.id), limit, cursor)
    return success_response(data.model_dump(), request)
