"""Collaborator webhooks; authenticated by X-Signature, not JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_webhooks.application.service import WebhookService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
_service = WebhookService()


@router.post("/{source}")
async def receive_webhook(
    source: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    x_signature: Annotated[str | None, Header(alias="X-Signature")] = None,
) -> ApiResponse:
    body = await request.body()
    data = await _service.handle(db, source, body, x_signature)
    return success_response(data.model_dump(), request)
