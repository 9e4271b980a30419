"""Place-order endpoint; requires JWT (guest_email is contact data only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_checkout.application.schemas import PlaceOrderRequest
from src.mk_checkout.application.service import CheckoutService
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/checkout", tags=["checkout"])
_service = CheckoutService()


@router.post("/orders", status_code=201)
async def place_order(
    body: PlaceOrderRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.place_order(db, str(current_user.id), body)
    return success_response(data.model_dump(mode="json"), request)
