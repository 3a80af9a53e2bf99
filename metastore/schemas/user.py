"""User schemas."""

from datetime import datetime

from pydantic import EmailStr, TypeAdapter

from metastore.schemas.common import CamelModel

_EMAIL = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """The form EmailStr stores: domain lower-cased, local part kept as typed."""
    return _EMAIL.validate_python(email.strip())


class UserCreate(CamelModel):
    email: EmailStr
    name: str
    # already hashed; see metastore.utils.security
    password: str


class UserUpdate(CamelModel):
    email: EmailStr | None = None
    name: str | None = None
    password: str | None = None


class User(CamelModel):
    id: str
    email: str
    name: str = ""
    password: str = ""
    created_at: datetime


class RegisterRequest(CamelModel):
    email: EmailStr
    name: str = ""
    password: str


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    created_at: datetime
