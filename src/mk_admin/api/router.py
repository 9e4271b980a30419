"""Admin REST API; every route requires role=admin."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_admin.application.schemas import ReleaseMaturedRequest, WithdrawalBlockRequest
from src.mk_admin.application.service import AdminService
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import require_admin
from src.mk_gateway.user.db_models import UserModel
from src.mk_order.application.schemas import AdminStatusRequest
from src.mk_resolution.application.schemas import (
    DisputeRemedyRequest,
    DisputeStatusRequest,
    ReturnStatusRequest,
)

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()

Admin = Annotated[UserModel, Depends(require_admin)]
Db = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("/orders")
async def list_orders(
    admin: Admin,
    db: Db,
    request: Request,
    status: str | None = Query(None),
    seller_id: str | None = Query(None),
    buyer_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    data = await _service.list_orders(db, status, seller_id, buyer_id, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/orders/{order_id}/status")
async def override_order_status(
    order_id: str, body: AdminStatusRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.override_order_status(
        db, str(admin.id), order_id, body.status, body.carrier, body.tracking_number, body.note
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/returns")
async def list_returns(
    admin: Admin,
    db: Db,
    request: Request,
    status: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    data = await _service.list_returns(db, status, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/returns/{return_id}/status")
async def update_return_status(
    return_id: str, body: ReturnStatusRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.update_return_status(
        db, str(admin.id), return_id, body.status, body.admin_notes, body.refund_amount_cents
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/disputes")
async def list_disputes(
    admin: Admin,
    db: Db,
    request: Request,
    status: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    data = await _service.list_disputes(db, status, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/disputes/{dispute_id}/status")
async def update_dispute_status(
    dispute_id: str, body: DisputeStatusRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.update_dispute_status(
        db, str(admin.id), dispute_id, body.status, body.resolution, body.admin_notes
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/disputes/{dispute_id}/remedy")
async def remedy_dispute(
    dispute_id: str, body: DisputeRemedyRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.remedy_dispute(
        db, str(admin.id), dispute_id, body.refund_amount_cents, body.admin_notes
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/payouts/release-matured")
async def release_matured(
    body: ReleaseMaturedRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.release_matured(db, str(admin.id), body.limit)
    return success_response(data.model_dump(), request)


@router.post("/payouts/{payout_id}/release")
async def release_payout(payout_id: str, admin: Admin, db: Db, request: Request) -> ApiResponse:
    data = await _service.release_payout(db, str(admin.id), payout_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/users/{user_id}/withdrawal-block")
async def set_withdrawal_block(
    user_id: str, body: WithdrawalBlockRequest, admin: Admin, db: Db, request: Request
) -> ApiResponse:
    data = await _service.set_withdrawal_block(db, str(admin.id), user_id, body.blocked, body.reason)
    return success_response(data, request)


@router.get("/invariants")
async def check_invariants(admin: Admin, db: Db, request: Request) -> ApiResponse:
    data = await _service.check_invariants(db)
    return success_response(data.model_dump(), request)
