"""Friend pairing: the request/accept/reject state machine and its listings.

A pair is one row per unordered pair of users. ``pending`` is an outstanding
request from source to destination; ``accepted`` is a friendship visible from
both sides. Rejecting or unfriending deletes the row. Every mutation runs under
the row's version check, so two racing writers cannot both succeed.

Callers that are not allowed to see a pair get the same ``RecordNotFound`` as
callers asking for a pair that does not exist.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session

from materix.database import commit
from materix.errors import ConstraintViolation, DuplicateRequest, EditConflict, RecordNotFound, ValidationFailed
from materix.models.friend_pair import FriendPair, PairStatus
from materix.models.user import User
from materix.pagination import Filters, Meta, paginate
from materix.services.search import text_search
from materix.validator import Validator

logger = logging.getLogger(__name__)

FRIEND_SORT_SAFELIST = ("id", "created_at", "updated_at", "-id", "-created_at", "-updated_at")


@dataclass
class FriendEntry:
    user: User
    request: FriendPair


def validate_request(v: Validator, source_id: int, destination_id: int) -> None:
    v.check(source_id > 0, "source_id", "must be a positive integer")
    v.check(destination_id > 0, "destination_id", "must be a positive integer")
    v.check(source_id != destination_id, "destination_id", "cannot send a friend request to yourself")


def send_request(db: Session, source_id: int, destination_id: int) -> FriendPair:
    v = Validator()
    validate_request(v, source_id, destination_id)
    v.raise_if_invalid()

    pair = FriendPair.request(source_id, destination_id)
    db.add(pair)
    try:
        commit(db)
    except ConstraintViolation as exc:
        if exc.kind == "unique":
            raise DuplicateRequest() from exc
        if exc.kind == "foreign_key":
            raise ValidationFailed({"destination_id": "user does not exist"}) from exc
        raise
    db.refresh(pair)
    logger.info("Friend request %s sent from %s to %s", pair.id, source_id, destination_id)
    return pair


def get_request(db: Session, request_id: int) -> FriendPair:
    pair = db.query(FriendPair).filter(FriendPair.id == request_id).first()
    if not pair:
        raise RecordNotFound()
    return pair


def _check_version(pair: FriendPair, version: Optional[int]) -> None:
    if version is not None and version != pair.version:
        raise EditConflict()


def accept_request(db: Session, request_id: int, acting_user_id: int, version: Optional[int] = None) -> FriendPair:
    """Accept a pending request; only its destination may do so."""
    pair = db.query(FriendPair).filter(FriendPair.id == request_id).first()
    if (
        pair is None
        or pair.status != PairStatus.pending.value
        or pair.destination_user_id != acting_user_id
    ):
        raise RecordNotFound()
    _check_version(pair, version)

    pair.status = PairStatus.accepted.value
    pair.updated_at = datetime.now(timezone.utc)
    commit(db)
    db.refresh(pair)
    logger.info("Friend request %s accepted by %s", pair.id, acting_user_id)
    return pair


def remove_request(db: Session, request_id: int, acting_user_id: int, version: Optional[int] = None) -> None:
    """Reject a pending request or end a friendship; either participant may."""
    pair = db.query(FriendPair).filter(FriendPair.id == request_id).first()
    if pair is None or not pair.involves(acting_user_id):
        raise RecordNotFound()
    _check_version(pair, version)

    status = pair.status
    db.delete(pair)
    commit(db)
    logger.info("Friend pair %s (%s) removed by %s", request_id, status, acting_user_id)


def get_friendship(db: Session, user_id: int, friend_id: int) -> FriendPair:
    """The accepted pair between two users, in whichever direction it was sent."""
    pair = (
        db.query(FriendPair)
        .filter(
            FriendPair.pair_low_id == min(user_id, friend_id),
            FriendPair.pair_high_id == max(user_id, friend_id),
            FriendPair.status == PairStatus.accepted.value,
        )
        .first()
    )
    if not pair:
        raise RecordNotFound()
    return pair


def unfriend_user(db: Session, user_id: int, friend_id: int) -> None:
    pair = get_friendship(db, user_id, friend_id)
    db.delete(pair)
    commit(db)
    logger.info("User %s unfriended %s", user_id, friend_id)


def _counterpart_id(user_id: int):
    return case(
        (FriendPair.source_user_id == user_id, FriendPair.destination_user_id),
        else_=FriendPair.source_user_id,
    )


def _list_entries(db: Session, user_id: int, condition, filters: Filters, query: Optional[str] = None):
    columns = {
        "id": FriendPair.id,
        "created_at": FriendPair.created_at,
        "updated_at": FriendPair.updated_at,
    }
    order = [filters.order_by(columns), User.id.asc()]
    q = (
        db.query(func.count().over(), User, FriendPair)
        .select_from(FriendPair)
        .join(User, User.id == _counterpart_id(user_id))
        .filter(condition)
    )
    if query is not None:
        match, rank = text_search(query, User.name, User.email)
        q = q.filter(match)
        if rank is not None:
            order.insert(0, rank.desc())

    rows, meta = paginate(q.order_by(*order), filters)
    return [FriendEntry(user=user, request=pair) for _, user, pair in rows], meta


def _friends_of(user_id: int):
    return and_(
        FriendPair.status == PairStatus.accepted.value,
        or_(FriendPair.source_user_id == user_id, FriendPair.destination_user_id == user_id),
    )


def list_friends(db: Session, user_id: int, filters: Filters) -> tuple[list[FriendEntry], Meta]:
    return _list_entries(db, user_id, _friends_of(user_id), filters)


def list_sent(db: Session, user_id: int, filters: Filters) -> tuple[list[FriendEntry], Meta]:
    condition = and_(FriendPair.status == PairStatus.pending.value, FriendPair.source_user_id == user_id)
    return _list_entries(db, user_id, condition, filters)


def list_received(db: Session, user_id: int, filters: Filters) -> tuple[list[FriendEntry], Meta]:
    condition = and_(FriendPair.status == PairStatus.pending.value, FriendPair.destination_user_id == user_id)
    return _list_entries(db, user_id, condition, filters)


def search_friends(db: Session, user_id: int, query: Optional[str], filters: Filters) -> tuple[list[FriendEntry], Meta]:
    """Friends whose name or email matches every term of ``query``, best match first."""
    return _list_entries(db, user_id, _friends_of(user_id), filters, query=query or "")
