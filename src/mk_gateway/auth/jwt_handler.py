"""JWT issue/verify for the marketplace API (HS256, shared JWT_SECRET).

Access tokens carry the user's role so admin-only routers can reject early;
the role is re-checked against the users row in ``require_admin``.
Tokens are not revocable before expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.mk_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_TTL = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_TTL = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _encode(claims: dict[str, object], ttl: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {**claims, "iat": now, "exp": now + ttl}
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str, role: str = "user") -> str:
    return _encode({"sub": user_id, "type": "access", "role": role}, _ACCESS_TTL)


def create_refresh_token(user_id: str) -> str:
    return _encode({"sub": user_id, "type": "refresh"}, _REFRESH_TTL)


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode a token and enforce its ``type`` claim.

    Raises InvalidCredentialsError for access tokens and
    InvalidRefreshTokenError for refresh tokens (bad signature, expired,
    or wrong type).
    """
    error = InvalidCredentialsError if expected_type == "access" else InvalidRefreshTokenError
    try:
        payload: dict[str, str] = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[_ALGORITHM]
        )
    except JWTError:
        raise error() from None
    if payload.get("type") != expected_type:
        raise error()
    return payload
