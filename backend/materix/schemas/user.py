"""Pydantic schemas for Users."""
from typing import Optional
from pydantic import BaseModel

from materix.pagination import Meta
from materix.schemas.common import UTCDateTime


class UserCreate(BaseModel):
    name: str
    email: str
    password: str


class UserLogin(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    version: Optional[int] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = None
    new_password: str


class PublicUserOut(BaseModel):
    """Profile fields any authenticated user may see."""

    id: int
    uuid: str
    name: str
    email: str
    avatar_url: str

    model_config = {"from_attributes": True}


class UserOut(PublicUserOut):
    provider: str
    activated: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime
    version: int


class UserEnvelope(BaseModel):
    user: UserOut


class PublicUserEnvelope(BaseModel):
    user: PublicUserOut


class UserPage(BaseModel):
    users: list[PublicUserOut]
    meta: Meta
