"""Pydantic schemas for free-time windows."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from materix.pagination import Meta
from materix.schemas.common import UTCDateTime
from materix.schemas.user import PublicUserOut


class FreeTimeCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    tags: list[str] = []
    visibility: str = "public"
    viewers: list[int] = []


class FreeTimeUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    tags: Optional[list[str]] = None
    version: Optional[int] = None  # optimistic lock, checked when supplied


class FreeTimeBase(BaseModel):
    id: int
    start_time: UTCDateTime
    end_time: UTCDateTime
    tags: list[str]
    visibility: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    version: int

    model_config = {"from_attributes": True}


class FreeTimeOut(FreeTimeBase):
    user_id: int
    viewer_ids: list[int] = []


class FriendFreeTimeOut(BaseModel):
    free_time: FreeTimeBase
    owner: PublicUserOut

    model_config = {"from_attributes": True}


class FreeTimeEnvelope(BaseModel):
    free_time: FreeTimeOut


class FreeTimePage(BaseModel):
    free_times: list[FreeTimeOut]
    meta: Meta


class FriendFreeTimePage(BaseModel):
    free_times: list[FriendFreeTimeOut]
    meta: Meta
