from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_order.application.schemas import AddTrackingRequest, CancelOrderRequest
from src.mk_order.application.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])
_service = OrderService()


@router.get("")
async def list_orders(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    role: Literal["buying", "selling"] = Query("buying", description="Orders I bought or sold"),
    status: str | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> ApiResponse:
    data = await _service.list_orders(db, str(current_user.id), role, status, limit, cursor)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_order(db, order_id, str(current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{order_id}/tracking")
async def add_tracking(
    order_id: str,
    body: AddTrackingRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.add_tracking(
        db, order_id, str(current_user.id), body.carrier, body.tracking_number
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{order_id}/confirm-delivery")
async def confirm_delivery(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.confirm_delivery(db, order_id, str(current_user.id))
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.seller_cancel(db, order_id, str(current_user.id), body.reason)
    return success_response(data.model_dump(mode="json"), request)
