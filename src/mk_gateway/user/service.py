"""User service: register, login, refresh, and the two account flags other
modules change (KYC outcome, withdrawal block).

The KYC and block setters only execute; the calling service commits.
"""

import logging

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import KycStatus
from src.mk_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UserNotFoundError,
    UsernameExistsError,
)
from src.mk_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.mk_gateway.auth.password import hash_password, verify_password
from src.mk_gateway.user.db_models import UserModel

logger = logging.getLogger(__name__)

_CREATE_BALANCE_SQL = text("""
    INSERT INTO seller_balances (seller_id) VALUES (:seller_id)
    ON CONFLICT (seller_id) DO NOTHING
""")

_SET_KYC_SQL = text("""
    UPDATE users SET kyc_status = :kyc_status, updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
    RETURNING id
""")

_SET_BLOCK_SQL = text("""
    UPDATE users
    SET withdrawal_blocked = :blocked,
        withdrawal_blocked_reason = :reason,
        updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
    RETURNING id
""")


class UserService:
    """Stateless; one instance per router module."""

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
        country: str | None = None,
    ) -> UserModel:
        """Insert the user and its empty seller balance row in one transaction.

        The caller wraps this in ``async with db.begin()``.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            is_active=True,
            role="user",
            country=country,
            kyc_status=KycStatus.NOT_STARTED.value,
            withdrawal_blocked=False,
        )
        db.add(user)
        await db.flush()

        await db.execute(_CREATE_BALANCE_SQL, {"seller_id": str(user.id)})
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Return (user, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), user.role),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        user_id = str(payload["sub"])
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise AccountDisabledError()
        return create_access_token(user_id, user.role)

    async def set_kyc_status(self, db: AsyncSession, user_id: str, status: KycStatus) -> None:
        result = await db.execute(
            _SET_KYC_SQL, {"user_id": user_id, "kyc_status": status.value}
        )
        if result.fetchone() is None:
            raise UserNotFoundError(user_id)
        logger.info("KYC status user=%s -> %s", user_id, status.value)

    async def set_withdrawal_block(
        self, db: AsyncSession, user_id: str, blocked: bool, reason: str | None
    ) -> None:
        result = await db.execute(
            _SET_BLOCK_SQL,
            {"user_id": user_id, "blocked": blocked, "reason": reason if blocked else None},
        )
        if result.fetchone() is None:
            raise UserNotFoundError(user_id)
        logger.info("Withdrawal block user=%s blocked=%s reason=%s", user_id, blocked, reason)
