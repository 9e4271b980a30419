"""Auth API router: register, login, refresh, me."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from src.mk_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="User registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(
            body.username, body.email, body.password, db, country=body.country
        )

    data = RegisterResponse(
        user_id=str(user.id),
        username=user.username,
        email=user.email,
        country=user.country,
        created_at=user.created_at.isoformat(),
    )
    resp = success_response(data.model_dump(), request)
    resp.message = "User registered successfully"
    return resp


@router.post("/login", response_model=ApiResponse, summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.username, body.password, db)

    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=UserInfo(
            user_id=str(user.id),
            username=user.username,
            email=user.email,
            role=user.role,
        ),
    )
    resp = success_response(data.model_dump(), request)
    resp.message = "Login successful"
    return resp


@router.post("/refresh", response_model=ApiResponse, summary="Refresh access token")
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token, db)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = success_response(data.model_dump(), request)
    resp.message = "Token refreshed"
    return resp


@router.get("/me", response_model=ApiResponse, summary="Current user profile")
async def me(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> ApiResponse:
    data = ProfileResponse(
        user_id=str(current_user.id),
        username=current_user.username,
        email=current_user.email,
        role=current_user.role,
        country=current_user.country,
        kyc_status=current_user.kyc_status,
        withdrawal_blocked=current_user.withdrawal_blocked,
        withdrawal_blocked_reason=current_user.withdrawal_blocked_reason,
    )
    return success_response(data.model_dump(), request)
