"""Free-time API routes: the caller's own windows and their friends' windows."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from materix.auth import require_user
from materix.database import get_db
from materix.models.user import User
from materix.pagination import Filters, filters_dependency
from materix.schemas.common import MessageOut
from materix.schemas.free_time import (
    FreeTimeBase,
    FreeTimeCreate,
    FreeTimeEnvelope,
    FreeTimeOut,
    FreeTimePage,
    FreeTimeUpdate,
    FriendFreeTimeOut,
    FriendFreeTimePage,
)
from materix.schemas.user import PublicUserOut
from materix.services import free_time_service
from materix.services.free_time_service import FriendFreeTime
from materix.time_range import TimeRange, time_range_dependency

logger = logging.getLogger(__name__)
router = APIRouter()

free_time_filters = filters_dependency(free_time_service.FREE_TIME_SORT_SAFELIST, "start_time")


def _friend_entries(entries: list[FriendFreeTime]) -> list[FriendFreeTimeOut]:
    return [
        FriendFreeTimeOut(
            free_time=FreeTimeBase.model_validate(entry.free_time),
            owner=PublicUserOut.model_validate(entry.owner),
        )
        for entry in entries
    ]


@router.get("/free", response_model=FreeTimePage)
def list_free_times(
    filters: Filters = Depends(free_time_filters),
    time_range: TimeRange = Depends(time_range_dependency),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """List the caller's windows, optionally bounded to ``[from, to)``."""
    windows, meta = free_time_service.list_free_times(db, current_user.id, filters, time_range)
    return FreeTimePage(free_times=[FreeTimeOut.model_validate(w) for w in windows], meta=meta)


@router.post("/free", response_model=FreeTimeEnvelope, status_code=status.HTTP_201_CREATED)
def create_free_time(payload: FreeTimeCreate, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    window = free_time_service.create_free_time(
        db=db,
        owner_id=current_user.id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        tags=payload.tags,
        visibility=payload.visibility,
        viewer_ids=payload.viewers,
    )
    return FreeTimeEnvelope(free_time=FreeTimeOut.model_validate(window))


@router.get("/free/{free_time_id}", response_model=FreeTimeEnvelope)
def get_free_time(free_time_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    window = free_time_service.get_free_time(db, free_time_id, current_user.id)
    return FreeTimeEnvelope(free_time=FreeTimeOut.model_validate(window))


@router.patch("/free/{free_time_id}", response_model=FreeTimeEnvelope)
def update_free_time(
    free_time_id: int,
    payload: FreeTimeUpdate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Partially update a window; omitted fields keep their values."""
    window = free_time_service.get_free_time(db, free_time_id, current_user.id)
    window = free_time_service.update_free_time(db, window, **payload.model_dump(exclude_unset=True))
    return FreeTimeEnvelope(free_time=FreeTimeOut.model_validate(window))


@router.delete("/free/{free_time_id}", response_model=MessageOut)
def delete_free_time(
    free_time_id: int,
    version: Optional[int] = Query(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    window = free_time_service.get_free_time(db, free_time_id, current_user.id)
    free_time_service.delete_free_time(db, window, version)
    return MessageOut(message="free time successfully deleted")


@router.get("/friends/free", response_model=FriendFreeTimePage)
def list_friends_free_times(
    filters: Filters = Depends(free_time_filters),
    time_range: TimeRange = Depends(time_range_dependency),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Windows the caller's friends have shared with them."""
    entries, meta = free_time_service.list_friends_free_times(db, current_user.id, filters, time_range)
    return FriendFreeTimePage(free_times=_friend_entries(entries), meta=meta)


@router.get("/friends/{friend_id}/free", response_model=FriendFreeTimePage)
def list_friend_free_times(
    friend_id: int,
    filters: Filters = Depends(free_time_filters),
    time_range: TimeRange = Depends(time_range_dependency),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    entries, meta = free_time_service.list_friends_free_times(
        db, current_user.id, filters, time_range, friend_id=friend_id
    )
    return FriendFreeTimePage(free_times=_friend_entries(entries), meta=meta)
