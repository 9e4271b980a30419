"""Returns and disputes REST API; all routes require JWT."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_order.application.service import OrderService
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_resolution.application.schemas import (
    CreateDisputeRequest,
    CreateReturnRequest,
    ReturnStatusRequest,
    ReturnTrackingRequest,
)
from src.mk_resolution.application.service import DisputeService, ReturnService

returns_router = APIRouter(prefix="/returns", tags=["returns"])
disputes_router = APIRouter(prefix="/disputes", tags=["disputes"])

_ledger = PayoutLedgerService()
_orders = OrderService(ledger=_ledger)
_returns = ReturnService(orders=_orders, ledger=_ledger)
_disputes = DisputeService(returns=_returns, orders=_orders)


@returns_router.post("", status_code=201)
async def create_return(
    body: CreateReturnRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _returns.create_return(
        db, str(current_user.id), body.order_id, body.reason, body.description
    )
    return success_response(data.model_dump(mode="json"), request)


@returns_router.get("")
async def list_returns(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    role: Literal["buyer", "seller"] = Query("buyer", description="Returns I opened or received"),
    status: str | None = Query(None, description="Filter by return status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (return ID)"),
) -> ApiResponse:
    data = await _returns.list_returns(db, str(current_user.id), role, status, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)


@returns_router.get("/{return_id}")
async def get_return(
    return_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _returns.get_return(db, return_id, str(current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@returns_router.post("/{return_id}/status")
async def update_return_status(
    return_id: str,
    body: ReturnStatusRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _returns.seller_update_status(
        db,
        str(current_user.id),
        return_id,
        body.status,
        body.admin_notes,
        body.refund_amount_cents,
    )
    return success_response(data.model_dump(mode="json"), request)


@returns_router.post("/{return_id}/tracking")
async def add_return_tracking(
    return_id: str,
    body: ReturnTrackingRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _returns.add_tracking(db, str(current_user.id), return_id, body.tracking_number)
    return success_response(data.model_dump(mode="json"), request)


@returns_router.post("/{return_id}/cancel")
async def cancel_return(
    return_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _returns.cancel_return(db, str(current_user.id), return_id)
    return success_response(data.model_dump(mode="json"), request)


@disputes_router.post("", status_code=201)
async def create_dispute(
    body: CreateDisputeRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _disputes.create_dispute(
        db, str(current_user.id), body.order_id, body.reason, body.description
    )
    return success_response(data.model_dump(mode="json"), request)


@disputes_router.get("")
async def list_disputes(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by dispute status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (dispute ID)"),
) -> ApiResponse:
    data = await _disputes.list_disputes(db, str(current_user.id), status, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)
