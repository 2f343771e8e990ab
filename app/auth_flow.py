"""
Account workflows: signup, OTP verification, login, password reset.

Per email the states are::

    NoAccount --signup--> PendingVerification --verify(signup)--> Active
    Active --forgot/resend--> ResetRequested --verify(reset)--> ResetVerified
    ResetVerified --reset-password--> Active (new password)

Each function is one terminal decision: it either returns a result or raises
a ``PortalError``. Client-facing messages stay generic; the log records the
exact reason.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models, otp
from .core import security
from .core.config import settings
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidOtpError,
    NotFoundError,
    ValidationError,
    VerificationRequiredError,
)
from .utils import utcnow

logger = logging.getLogger(__name__)

PURPOSES = (models.PURPOSE_SIGNUP, models.PURPOSE_RESET)


@dataclass
class IssuedCode:
    email: str
    code: str
    purpose: str


@dataclass
class LoginResult:
    user: models.User
    token: str


@dataclass
class VerifyResult:
    purpose: str
    user: models.User


def _live_pending_user(db: Session, email: str, now: datetime) -> Optional[models.PendingUser]:
    pending = crud.get_pending_user_by_email(db, email)
    if pending is None:
        return None
    cutoff = now - timedelta(minutes=settings.PENDING_USER_TTL_MINUTES)
    if pending.created_at <= cutoff:
        logger.info("Pending registration for %s is older than %d minutes, ignoring",
                    email, settings.PENDING_USER_TTL_MINUTES)
        return None
    return pending


def signup(db: Session, username: str, full_name: str, email: str, password: str) -> IssuedCode:
    if crud.get_user_by_email(db, email):
        logger.info("Signup rejected for %s: email already registered", email)
        raise ConflictError("User already exists with this email")

    if crud.get_user_by_username(db, username):
        logger.info("Signup rejected for %s: username %r taken", email, username)
        raise ConflictError("Username is already taken")

    hashed = security.get_password_hash(password)
    try:
        # re-signup before verification replaces the earlier attempt
        pending = crud.upsert_pending_user(
            db,
            username=username,
            full_name=full_name,
            email=email,
            password=hashed
        )
        code = otp.issue_otp(db, pending.email, models.PURPOSE_SIGNUP)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Signup for %s lost a race on the pending_users email constraint", email)
        raise ConflictError("A registration for this email is already in progress")

    logger.info("Registration initiated for %s (username=%s)", pending.email, pending.username)
    return IssuedCode(email=pending.email, code=code.code, purpose=code.purpose)


def verify_otp(db: Session, email: str, code: str, purpose: Optional[str] = None) -> VerifyResult:
    now = utcnow()

    if purpose is None:
        # clients that do not send a purpose get the legacy inference
        purpose = models.PURPOSE_SIGNUP if _live_pending_user(db, email, now) else models.PURPOSE_RESET
        logger.debug("No purpose given for %s, inferred %s", email, purpose)
    elif purpose not in PURPOSES:
        raise ValidationError("Invalid verification purpose")

    record = otp.validate_otp(db, email, code, purpose=purpose, now=now)
    if record is None:
        logger.info("Verification failed for %s: no unused, unexpired %s code matches", email, purpose)
        raise InvalidOtpError()

    if purpose == models.PURPOSE_SIGNUP:
        return VerifyResult(purpose=purpose, user=_activate_pending_user(db, email, record, now))

    # reset: leave the code unused so reset-password can still redeem it
    user = crud.get_user_by_email(db, email)
    if user is None:
        logger.info("Reset verification for %s matched a code but no user exists", email)
        raise NotFoundError("User not found")

    logger.info("Reset code verified for %s", email)
    return VerifyResult(purpose=purpose, user=user)


def _activate_pending_user(db: Session, email: str, record: models.OtpCode, now: datetime) -> models.User:
    pending = _live_pending_user(db, email, now)
    if pending is None:
        logger.info("Signup verification for %s: code valid but no live pending registration", email)
        raise InvalidOtpError()

    try:
        otp.consume_otp(db, record.id)
        user = crud.create_user(
            db,
            username=pending.username,
            full_name=pending.full_name,
            email=pending.email,
            password=pending.password,
            role=models.ROLE_STUDENT,
            is_verified=True
        )
        crud.delete_pending_user(db, email)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Activation of %s hit a uniqueness constraint, rolled back", email)
        raise ConflictError("User already exists with this email or username")

    db.refresh(user)
    logger.info("Registration completed for %s (id=%s, username=%s)", user.email, user.id, user.username)
    return user


def login(db: Session, email: str, password: str) -> LoginResult:
    user = crud.get_user_by_email(db, email)
    if user is None:
        security.verify_password(password, security.DUMMY_PASSWORD_HASH)
        logger.info("Login failed for %s: no such user", email)
        raise AuthenticationError()

    if not security.verify_password(password, user.password):
        logger.info("Login failed for %s: wrong password", email)
        raise AuthenticationError()

    if user.is_admin:
        logger.info("Admin login for %s", email)
        return LoginResult(user=user, token=security.create_access_token(user.id))

    if not user.email.endswith(settings.EMAIL_DOMAIN):
        logger.warning("Login refused for %s: student account outside %s", email, settings.EMAIL_DOMAIN)
        raise AuthorizationError(
            f"Only VU students with {settings.EMAIL_DOMAIN} emails can access this portal"
        )

    if not user.is_verified:
        logger.info("Login refused for %s: email not verified", email)
        raise VerificationRequiredError(user.email)

    logger.info("Student login for %s", email)
    return LoginResult(user=user, token=security.create_access_token(user.id))


def request_password_reset(db: Session, email: str) -> IssuedCode:
    user = crud.get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email %s", email)
        raise NotFoundError("No account found with this email address")

    code = otp.issue_otp(db, user.email, models.PURPOSE_RESET)
    db.commit()
    return IssuedCode(email=user.email, code=code.code, purpose=code.purpose)


def resend_otp(db: Session, email: str) -> IssuedCode:
    now = utcnow()
    if _live_pending_user(db, email, now):
        purpose = models.PURPOSE_SIGNUP
    elif crud.get_user_by_email(db, email):
        purpose = models.PURPOSE_RESET
    else:
        logger.info("Resend requested for unknown email %s", email)
        raise NotFoundError("No account found with this email address")

    code = otp.issue_otp(db, email, purpose, now=now)
    db.commit()
    return IssuedCode(email=email, code=code.code, purpose=purpose)


def reset_password(db: Session, email: str, code: str, new_password: str) -> models.User:
    now = utcnow()
    record = otp.validate_otp(db, email, code, purpose=models.PURPOSE_RESET, now=now)
    if record is None:
        if otp.validate_otp_lenient(db, email, code, purpose=models.PURPOSE_RESET, now=now):
            logger.info("Password reset for %s rejected: code already used", email)
        else:
            logger.info("Password reset for %s rejected: code unknown or expired", email)
        raise InvalidOtpError()

    user = crud.get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")

    crud.update_user(db, user.id, password=security.get_password_hash(new_password))
    otp.consume_otp(db, record.id)
    db.commit()

    # existing tokens stay valid until they expire
    logger.info("Password reset completed for %s", email)
    return user


def get_user_for_token(db: Session, user_id: Optional[int]) -> Optional[models.User]:
    if user_id is None:
        return None
    return crud.get_user(db, user_id)


def setup_profile(db: Session, user: models.User, degree_program: str, subjects: List[str]) -> models.User:
    updated = crud.update_user_profile(db, user.id, degree_program, subjects)
    if updated is None:
        raise NotFoundError("User not found")
    db.commit()
    db.refresh(updated)
    logger.info("Profile set up for %s: %s, %d subject(s)", updated.email, degree_program, len(subjects))
    return updated


def normalize_email(email: str) -> str:
    """Normalize the way ``EmailStr`` does for request bodies."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}")


def list_users(db: Session) -> List[models.User]:
    return crud.get_all_users(db)


def provision_admin(
        db: Session,
        email: str,
        password: str,
        username: str = "admin",
        full_name: str = "Admin User"
) -> tuple:
    """Create the admin account if it does not exist yet.

    Returns ``(user, created)``. An existing account with the email is left
    untouched, whatever its role.
    """
    email = normalize_email(email)
    existing = crud.get_user_by_email(db, email)
    if existing is not None:
        logger.info("Admin provisioning skipped: %s already exists (role=%s)", email, existing.role)
        return existing, False

    if crud.get_user_by_username(db, username):
        raise ConflictError("Username is already taken")

    user = crud.create_user(
        db,
        username=username,
        full_name=full_name,
        email=email,
        password=security.get_password_hash(password),
        role=models.ROLE_ADMIN,
        is_verified=True
    )
    db.commit()
    db.refresh(user)
    logger.info("Admin user provisioned: %s", email)
    return user, True
