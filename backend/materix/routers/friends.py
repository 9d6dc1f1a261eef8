"""Friend API routes: requests, friendships and friend search."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from materix.auth import require_user
from materix.database import get_db
from materix.models.user import User
from materix.pagination import Filters, filters_dependency
from materix.schemas.common import MessageOut
from materix.schemas.friend import (
    FriendEntryOut,
    FriendPage,
    FriendRequestCreate,
    FriendRequestEnvelope,
    FriendRequestOut,
    FriendRequestPage,
    PairDetailsOut,
)
from materix.schemas.user import PublicUserOut
from materix.services import friend_service
from materix.services.friend_service import FriendEntry

logger = logging.getLogger(__name__)
router = APIRouter()

friend_filters = filters_dependency(friend_service.FRIEND_SORT_SAFELIST, "id")


def _entries(entries: list[FriendEntry]) -> list[FriendEntryOut]:
    return [
        FriendEntryOut(
            user=PublicUserOut.model_validate(entry.user),
            request=PairDetailsOut.model_validate(entry.request),
        )
        for entry in entries
    ]


@router.get("", response_model=FriendPage)
def list_friends(
    filters: Filters = Depends(friend_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    entries, meta = friend_service.list_friends(db, current_user.id, filters)
    return FriendPage(friends=_entries(entries), meta=meta)


@router.get("/search", response_model=FriendPage)
def search_friends(
    q: Optional[str] = Query(None),
    filters: Filters = Depends(friend_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Friends matching every term of ``q``, most relevant first."""
    entries, meta = friend_service.search_friends(db, current_user.id, q, filters)
    return FriendPage(friends=_entries(entries), meta=meta)


@router.post("/requests", response_model=FriendRequestEnvelope, status_code=status.HTTP_201_CREATED)
def send_request(
    payload: FriendRequestCreate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    pair = friend_service.send_request(db, current_user.id, payload.destination_id)
    return FriendRequestEnvelope(request=FriendRequestOut.model_validate(pair))


@router.get("/requests/sent", response_model=FriendRequestPage)
def list_sent(
    filters: Filters = Depends(friend_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    entries, meta = friend_service.list_sent(db, current_user.id, filters)
    return FriendRequestPage(requests=_entries(entries), meta=meta)


@router.get("/requests/received", response_model=FriendRequestPage)
def list_received(
    filters: Filters = Depends(friend_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    entries, meta = friend_service.list_received(db, current_user.id, filters)
    return FriendRequestPage(requests=_entries(entries), meta=meta)


@router.put("/requests/{request_id}", response_model=FriendRequestEnvelope)
def accept_request(
    request_id: int,
    version: Optional[int] = Query(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Accept a pending request addressed to the caller."""
    pair = friend_service.accept_request(db, request_id, current_user.id, version)
    return FriendRequestEnvelope(request=FriendRequestOut.model_validate(pair))


@router.delete("/requests/{request_id}", response_model=MessageOut)
def remove_request(
    request_id: int,
    version: Optional[int] = Query(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Reject a pending request or end a friendship by pair id."""
    friend_service.remove_request(db, request_id, current_user.id, version)
    return MessageOut(message="friend request successfully deleted")


@router.delete("/{user_id}", response_model=MessageOut)
def unfriend(user_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    friend_service.unfriend_user(db, current_user.id, user_id)
    return MessageOut(message="friend successfully removed")
