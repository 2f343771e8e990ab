from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .core.config import settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_domain(email: str) -> str:
    if not email.endswith(settings.EMAIL_DOMAIN):
        raise ValueError(f"Email must be from {settings.EMAIL_DOMAIN} domain")
    return email


def _check_password_length(password: str) -> str:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
    return password


def _check_code(code: str) -> str:
    if len(code) != settings.OTP_LENGTH or not code.isdigit():
        raise ValueError(f"OTP must be {settings.OTP_LENGTH} digits")
    return code


class UserCreate(CamelModel):
    username: str
    full_name: str
    email: EmailStr
    password: str

    @field_validator("username", "full_name")
    @classmethod
    def not_blank(cls, v: str, info) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{to_camel(info.field_name)} is required")
        return v

    @field_validator("email")
    @classmethod
    def email_domain(cls, v: str) -> str:
        return _check_domain(v)

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password_length(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ForgotPassword(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def email_domain(cls, v: str) -> str:
        return _check_domain(v)


class ResendOTP(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def email_domain(cls, v: str) -> str:
        return _check_domain(v)


class VerifyOTP(CamelModel):
    email: EmailStr
    code: str
    purpose: Optional[Literal["signup", "reset"]] = None

    @field_validator("code")
    @classmethod
    def code_format(cls, v: str) -> str:
        return _check_code(v)


class ResetPassword(CamelModel):
    email: EmailStr
    code: str
    new_password: str
    confirm_password: str

    @field_validator("code")
    @classmethod
    def code_format(cls, v: str) -> str:
        return _check_code(v)

    @field_validator("new_password", "confirm_password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password_length(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPassword":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class ProfileSetup(CamelModel):
    degree_program: str
    subjects: List[str]

    @model_validator(mode="after")
    def profile_complete(self) -> "ProfileSetup":
        self.subjects = [s.strip() for s in self.subjects if s and s.strip()]
        if not self.degree_program.strip() or not self.subjects:
            raise ValueError("Degree program and at least one subject are required")
        return self


class User(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    username: str
    full_name: str
    email: str
    role: str
    is_verified: bool
    degree_program: Optional[str] = None
    subjects: Optional[List[str]] = None
    created_at: Optional[datetime] = None


class Message(CamelModel):
    message: str


class SignupResponse(Message):
    email: str


class EmailAck(Message):
    email: str


class ResendResponse(EmailAck):
    purpose: str


class LoginResponse(Message):
    token: str
    user: User


class VerifySignupResponse(Message):
    user: User


class VerifyResetResponse(Message):
    can_reset_password: bool = True
    email: str


class ProfileResponse(Message):
    user: User
