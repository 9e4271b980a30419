"""Pricing REST API: public, no JWT required."""

from fastapi import APIRouter, Request

from src.mk_common.response import ApiResponse, success_response
from src.mk_pricing.application.schemas import QuoteRequest
from src.mk_pricing.application.service import PricingService

router = APIRouter(prefix="/pricing", tags=["pricing"])
_service = PricingService()


@router.post("/quote")
async def quote(body: QuoteRequest, request: Request) -> ApiResponse:
    data = _service.quote(body)
    return success_response(data.model_dump(), request)


@router.get("/couriers")
async def list_couriers(request: Request) -> ApiResponse:
    data = [c.model_dump() for c in _service.list_couriers()]
    return success_response({"couriers": data}, request)
