"""
One-time passcodes scoped to an email address.

Codes are issued for a purpose (``signup`` or ``reset``), expire after
``OTP_EXPIRE_MINUTES`` and are single use. A code whose ``expires_at``
equals the current time is already expired.

Only ``sweep_expired`` commits; the other functions leave that to the caller.
Lookups that match nothing return None.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from . import crud, models
from .core.config import settings
from .utils import utcnow

logger = logging.getLogger(__name__)


def generate_otp(length: Optional[int] = None) -> str:
    """Uniform over the whole decimal range, leading zeros included."""
    length = length or settings.OTP_LENGTH
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def issue_otp(
        db: Session,
        email: str,
        purpose: str,
        ttl_minutes: Optional[int] = None,
        now: Optional[datetime] = None
) -> models.OtpCode:
    now = now or utcnow()
    ttl = settings.OTP_EXPIRE_MINUTES if ttl_minutes is None else ttl_minutes

    if settings.OTP_INVALIDATE_PREVIOUS:
        replaced = crud.mark_unused_otps_as_used(db, email, purpose)
        if replaced:
            logger.info("Invalidated %d earlier %s code(s) for %s", replaced, purpose, email)

    otp = crud.create_otp_code(
        db,
        email=email,
        code=generate_otp(),
        purpose=purpose,
        expires_at=now + timedelta(minutes=ttl),
        created_at=now
    )
    logger.info("Issued %s code for %s, expires at %s", purpose, email, otp.expires_at.isoformat())
    return otp


def validate_otp(
        db: Session,
        email: str,
        code: str,
        purpose: Optional[str] = None,
        now: Optional[datetime] = None
) -> Optional[models.OtpCode]:
    return crud.find_otp_code(db, email, code, now or utcnow(), purpose=purpose)


def validate_otp_lenient(
        db: Session,
        email: str,
        code: str,
        purpose: Optional[str] = None,
        now: Optional[datetime] = None
) -> Optional[models.OtpCode]:
    """Like validate_otp, but a code already marked used still matches."""
    return crud.find_otp_code(db, email, code, now or utcnow(), purpose=purpose, include_used=True)


def consume_otp(db: Session, otp_id: int) -> None:
    crud.mark_otp_as_used(db, otp_id)


def sweep_expired(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete expired codes and stale pending registrations, then commit."""
    now = now or utcnow()
    otps = crud.delete_otps_expired_at(db, now)
    pending = crud.delete_pending_users_created_before(
        db, now - timedelta(minutes=settings.PENDING_USER_TTL_MINUTES)
    )
    db.commit()
    if otps or pending:
        logger.info("Swept %d expired code(s) and %d stale pending user(s)", otps, pending)
    return {"otp_codes": otps, "pending_users": pending}
