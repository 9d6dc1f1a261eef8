"""Free-time windows: owner CRUD plus the friend-visible aggregate."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Session, selectinload

from materix.database import commit
from materix.errors import ConstraintViolation, EditConflict, RecordNotFound, ValidationFailed
from materix.models.free_time import FreeTime, FreeTimeViewer, Visibility
from materix.models.friend_pair import FriendPair, PairStatus
from materix.models.user import User
from materix.pagination import Filters, Meta, paginate
from materix.services.friend_service import get_friendship
from materix.time_range import TimeRange, as_utc
from materix.validator import Validator, permitted_value, unique

logger = logging.getLogger(__name__)

FREE_TIME_SORT_SAFELIST = (
    "id", "start_time", "end_time", "created_at",
    "-id", "-start_time", "-end_time", "-created_at",
)

MAX_TAGS = 20
MAX_TAG_LENGTH = 50


@dataclass
class FriendFreeTime:
    free_time: FreeTime
    owner: User


def validate_free_time(
    v: Validator,
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    tags: list[str],
    visibility: str,
    owner_id: int,
    viewer_ids: Optional[list[int]] = None,
    now: Optional[datetime] = None,
) -> None:
    now = now or datetime.now(timezone.utc)
    v.check(start_time is not None, "start_time", "must be provided")
    v.check(end_time is not None, "end_time", "must be provided")
    if start_time is not None:
        v.check(as_utc(start_time) > now, "start_time", "must be in the future")
    if start_time is not None and end_time is not None:
        v.check(as_utc(end_time) > as_utc(start_time), "end_time", "must be after start_time")

    v.check(permitted_value(visibility, *(vis.value for vis in Visibility)), "visibility", "must be public or private")

    v.check(len(tags) <= MAX_TAGS, "tags", "must not contain more than 20 entries")
    v.check(all(tag.strip() for tag in tags), "tags", "must not contain blank values")
    v.check(all(len(tag) <= MAX_TAG_LENGTH for tag in tags), "tags", "must not contain values longer than 50 characters")
    v.check(unique(tags), "tags", "must not contain duplicate values")

    if viewer_ids:
        v.check(unique(viewer_ids), "viewers", "must not contain duplicate values")
        v.check(all(i > 0 for i in viewer_ids), "viewers", "must contain positive user ids")
        v.check(owner_id not in viewer_ids, "viewers", "must not contain the owner")


def create_free_time(
    db: Session,
    owner_id: int,
    start_time: datetime,
    end_time: datetime,
    tags: Optional[list[str]] = None,
    visibility: str = Visibility.public.value,
    viewer_ids: Optional[list[int]] = None,
) -> FreeTime:
    """Insert a window together with its viewer grants, all or nothing."""
    tags = list(tags or [])
    viewer_ids = list(viewer_ids or [])
    v = Validator()
    validate_free_time(v, start_time, end_time, tags, visibility, owner_id, viewer_ids)
    v.raise_if_invalid()

    window = FreeTime(
        user_id=owner_id,
        start_time=as_utc(start_time),
        end_time=as_utc(end_time),
        tags=tags,
        visibility=visibility,
        viewers=[FreeTimeViewer(user_id=viewer_id) for viewer_id in viewer_ids],
    )
    db.add(window)
    try:
        commit(db)
    except ConstraintViolation as exc:
        if exc.kind == "foreign_key":
            raise ValidationFailed({"viewers": "must reference existing users"}) from exc
        raise
    db.refresh(window)
    logger.info("Free time %s created by %s with %d viewers", window.id, owner_id, len(viewer_ids))
    return window


def get_free_time(db: Session, free_time_id: int, owner_id: int) -> FreeTime:
    window = (
        db.query(FreeTime)
        .filter(FreeTime.id == free_time_id, FreeTime.user_id == owner_id)
        .first()
    )
    if not window:
        raise RecordNotFound()
    return window


def update_free_time(
    db: Session,
    window: FreeTime,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    tags: Optional[list[str]] = None,
    version: Optional[int] = None,
) -> FreeTime:
    """Apply the supplied fields and re-validate the merged window."""
    if version is not None and version != window.version:
        raise EditConflict()

    merged_start = as_utc(start_time) if start_time is not None else as_utc(window.start_time)
    merged_end = as_utc(end_time) if end_time is not None else as_utc(window.end_time)
    merged_tags = list(tags) if tags is not None else list(window.tags or [])

    v = Validator()
    validate_free_time(v, merged_start, merged_end, merged_tags, window.visibility, window.user_id)
    v.raise_if_invalid()

    window.start_time = merged_start
    window.end_time = merged_end
    window.tags = merged_tags
    window.updated_at = datetime.now(timezone.utc)
    commit(db)
    db.refresh(window)
    logger.info("Free time %s updated to version %s", window.id, window.version)
    return window


def delete_free_time(db: Session, window: FreeTime, version: Optional[int] = None) -> None:
    if version is not None and version != window.version:
        raise EditConflict()
    free_time_id = window.id
    db.delete(window)
    commit(db)
    logger.info("Free time %s deleted", free_time_id)


def _in_range(time_range: Optional[TimeRange]):
    conditions = []
    if time_range and time_range.start:
        conditions.append(FreeTime.start_time >= time_range.start)
    if time_range and time_range.end:
        conditions.append(FreeTime.start_time < time_range.end)
    return and_(*conditions) if conditions else None


def _sort_columns() -> dict:
    return {
        "id": FreeTime.id,
        "start_time": FreeTime.start_time,
        "end_time": FreeTime.end_time,
        "created_at": FreeTime.created_at,
    }


def list_free_times(
    db: Session, owner_id: int, filters: Filters, time_range: Optional[TimeRange] = None
) -> tuple[list[FreeTime], Meta]:
    q = (
        db.query(func.count().over(), FreeTime)
        .filter(FreeTime.user_id == owner_id)
        .options(selectinload(FreeTime.viewers))
    )
    in_range = _in_range(time_range)
    if in_range is not None:
        q = q.filter(in_range)
    q = q.order_by(filters.order_by(_sort_columns()), FreeTime.id.asc())
    rows, meta = paginate(q, filters)
    return [window for _, window in rows], meta


def list_friends_free_times(
    db: Session,
    viewer_id: int,
    filters: Filters,
    time_range: Optional[TimeRange] = None,
    friend_id: Optional[int] = None,
) -> tuple[list[FriendFreeTime], Meta]:
    """Windows of the viewer's friends that are public or granted to the viewer."""
    if friend_id is not None:
        get_friendship(db, viewer_id, friend_id)

    friendship = and_(
        FriendPair.status == PairStatus.accepted.value,
        or_(
            and_(FriendPair.source_user_id == viewer_id, FriendPair.destination_user_id == FreeTime.user_id),
            and_(FriendPair.destination_user_id == viewer_id, FriendPair.source_user_id == FreeTime.user_id),
        ),
    )
    granted = exists().where(
        FreeTimeViewer.free_time_id == FreeTime.id,
        FreeTimeViewer.user_id == viewer_id,
    )

    q = (
        db.query(func.count().over(), FreeTime, User)
        .select_from(FreeTime)
        .join(User, User.id == FreeTime.user_id)
        .join(FriendPair, friendship)
        .filter(or_(FreeTime.visibility == Visibility.public.value, granted))
    )
    if friend_id is not None:
        q = q.filter(FreeTime.user_id == friend_id)
    in_range = _in_range(time_range)
    if in_range is not None:
        q = q.filter(in_range)
    q = q.order_by(filters.order_by(_sort_columns()), FreeTime.id.asc())

    rows, meta = paginate(q, filters)
    return [FriendFreeTime(free_time=window, owner=owner) for _, window, owner in rows], meta
