# app/models.py
from sqlalchemy import Boolean, Column, Integer, String, DateTime, JSON, Index

from .database import Base
from .utils import utcnow

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

PURPOSE_SIGNUP = "signup"
PURPOSE_RESET = "reset"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_STUDENT)
    is_verified = Column(Boolean, nullable=False, default=False)
    degree_program = Column(String, nullable=True)
    subjects = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class PendingUser(Base):
    __tablename__ = "pending_users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class OtpCode(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String, index=True, nullable=False)
    code = Column(String(10), nullable=False)
    purpose = Column(String, nullable=False, default=PURPOSE_SIGNUP)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


Index("ix_otp_codes_email_code", OtpCode.email, OtpCode.code)
