"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.mk_admin.api.router import router as admin_router
from src.mk_checkout.api.router import router as checkout_router
from src.mk_common.database import engine
from src.mk_common.errors import AppError
from src.mk_common.redis_client import close_redis, get_redis
from src.mk_common.response import error_response, validation_error_response
from src.mk_gateway.api.router import router as auth_router
from src.mk_gateway.middleware.request_log import RequestLogMiddleware
from src.mk_order.api.router import router as order_router
from src.mk_payout.api.router import router as wallet_router
from src.mk_pricing.api.router import router as pricing_router
from src.mk_resolution.api.router import disputes_router, returns_router
from src.mk_webhooks.api.router import router as webhook_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    logger.info("%s started (commission %d bps, hold %d days)",
                settings.APP_NAME, settings.SELLER_COMMISSION_BPS, settings.PAYOUT_HOLD_DAYS)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    if exc.http_status >= 500:
        logger.error("%s failed: %d %s", request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    resp = validation_error_response(list(exc.errors()), request)
    return JSONResponse(status_code=422, content=jsonable_encoder(resp.model_dump()))


app.include_router(auth_router, prefix="/api/v1")
app.include_router(pricing_router, prefix="/api/v1")
app.include_router(checkout_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(returns_router, prefix="/api/v1")
app.include_router(disputes_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(webhook_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
