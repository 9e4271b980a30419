"""FastAPI auth dependencies: get_current_user, require_admin.

    @router.get("/orders")
    async def list_orders(user: Annotated[UserModel, Depends(get_current_user)]): ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.enums import UserRole
from src.mk_common.errors import AccountDisabledError, AdminRequiredError, InvalidCredentialsError
from src.mk_gateway.auth.jwt_handler import decode_token
from src.mk_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserModel:
    """Resolve the Bearer token to an active UserModel (401 otherwise)."""
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    if not user.is_active:
        raise AccountDisabledError()
    return user


async def require_admin(
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> UserModel:
    """Admin-only routes. The role is read from the users row, not the token."""
    if current_user.role != UserRole.ADMIN.value:
        raise AdminRequiredError()
    return current_user
