from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from pwdlib import PasswordHash
from .config import settings

logger = logging.getLogger(__name__)

password_hash = PasswordHash.recommended()

# verified against when the email is unknown, so login costs one hash either way
DUMMY_PASSWORD_HASH = password_hash.hash("vu-portal-dummy-password")

BEARER_PREFIX = "Bearer "


def verify_password(plain_password, password):
    return password_hash.verify(plain_password, password)


def get_password_hash(password):
    return password_hash.hash(password)


def create_access_token(user_id: int, expires_delta: timedelta | None = None):
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int | None:
    """Return the user id carried by ``token``, or None if it is not usable.

    Expired, malformed and badly signed tokens are not told apart.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.debug("Rejected token: %s", e)
        return None

    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        return None


def get_user_id_from_authorization(authorization: str | None) -> int | None:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        return None
    return decode_access_token(token)
