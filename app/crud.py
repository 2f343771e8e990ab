# app/crud.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models


# Nothing here commits: callers decide where the transaction ends.

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.username == username).first()


def get_all_users(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .order_by(models.User.created_at.desc(), models.User.id.desc())
        .all()
    )


def create_user(
        db: Session,
        username: str,
        full_name: str,
        email: str,
        password: str,
        role: str = models.ROLE_STUDENT,
        is_verified: bool = False
) -> models.User:
    db_user = models.User(
        username=username,
        full_name=full_name,
        email=email,
        password=password,
        role=role,
        is_verified=is_verified
    )
    db.add(db_user)
    db.flush()
    return db_user


def update_user(db: Session, user_id: int, **updates) -> Optional[models.User]:
    db_user = get_user(db, user_id)
    if db_user is None:
        return None
    for key, value in updates.items():
        setattr(db_user, key, value)
    db.flush()
    return db_user


def update_user_profile(db: Session, user_id: int, degree_program: str, subjects: List[str]):
    return update_user(db, user_id, degree_program=degree_program, subjects=list(subjects))


def upsert_pending_user(
        db: Session,
        username: str,
        full_name: str,
        email: str,
        password: str
) -> models.PendingUser:
    delete_pending_user(db, email)
    pending = models.PendingUser(
        username=username,
        full_name=full_name,
        email=email,
        password=password
    )
    db.add(pending)
    db.flush()
    return pending


def get_pending_user_by_email(db: Session, email: str) -> Optional[models.PendingUser]:
    return db.query(models.PendingUser).filter(models.PendingUser.email == email).first()


def delete_pending_user(db: Session, email: str) -> int:
    deleted = (
        db.query(models.PendingUser)
        .filter(models.PendingUser.email == email)
        .delete(synchronize_session="fetch")
    )
    db.flush()
    return deleted


def delete_pending_users_created_before(db: Session, cutoff: datetime) -> int:
    return (
        db.query(models.PendingUser)
        .filter(models.PendingUser.created_at <= cutoff)
        .delete(synchronize_session="fetch")
    )


def create_otp_code(
        db: Session,
        email: str,
        code: str,
        purpose: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None
) -> models.OtpCode:
    otp = models.OtpCode(
        email=email,
        code=code,
        purpose=purpose,
        expires_at=expires_at,
        is_used=False
    )
    if created_at is not None:
        otp.created_at = created_at
    db.add(otp)
    db.flush()
    return otp


def find_otp_code(
        db: Session,
        email: str,
        code: str,
        now: datetime,
        purpose: Optional[str] = None,
        include_used: bool = False
) -> Optional[models.OtpCode]:
    query = db.query(models.OtpCode).filter(
        models.OtpCode.email == email,
        models.OtpCode.code == code,
        models.OtpCode.expires_at > now,
    )
    if purpose is not None:
        query = query.filter(models.OtpCode.purpose == purpose)
    if not include_used:
        query = query.filter(models.OtpCode.is_used.is_(False))
    return query.order_by(models.OtpCode.id.desc()).first()


def get_otp_codes_for_email(db: Session, email: str) -> List[models.OtpCode]:
    return (
        db.query(models.OtpCode)
        .filter(models.OtpCode.email == email)
        .order_by(models.OtpCode.id.asc())
        .all()
    )


def mark_otp_as_used(db: Session, otp_id: int) -> None:
    db.query(models.OtpCode).filter(models.OtpCode.id == otp_id).update(
        {models.OtpCode.is_used: True}, synchronize_session="fetch"
    )
    db.flush()


def mark_unused_otps_as_used(db: Session, email: str, purpose: str) -> int:
    updated = (
        db.query(models.OtpCode)
        .filter(
            models.OtpCode.email == email,
            models.OtpCode.purpose == purpose,
            models.OtpCode.is_used.is_(False),
        )
        .update({models.OtpCode.is_used: True}, synchronize_session="fetch")
    )
    db.flush()
    return updated


def delete_otps_expired_at(db: Session, now: datetime) -> int:
    return (
        db.query(models.OtpCode)
        .filter(models.OtpCode.expires_at <= now)
        .delete(synchronize_session="fetch")
    )
