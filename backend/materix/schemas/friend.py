"""Pydantic schemas for friend requests and friendships."""
from pydantic import BaseModel

from materix.pagination import Meta
from materix.schemas.common import UTCDateTime
from materix.schemas.user import PublicUserOut


class FriendRequestCreate(BaseModel):
    destination_id: int


class FriendRequestOut(BaseModel):
    id: int
    source_user_id: int
    destination_user_id: int
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    version: int

    model_config = {"from_attributes": True}


class PairDetailsOut(BaseModel):
    id: int
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    version: int

    model_config = {"from_attributes": True}


class FriendEntryOut(BaseModel):
    """The other side of a pair plus the pair's own state."""

    user: PublicUserOut
    request: PairDetailsOut

    model_config = {"from_attributes": True}


class FriendRequestEnvelope(BaseModel):
    request: FriendRequestOut


class FriendPage(BaseModel):
    friends: list[FriendEntryOut]
    meta: Meta


class FriendRequestPage(BaseModel):
    requests: list[FriendEntryOut]
    meta: Meta
