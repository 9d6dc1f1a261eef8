"""User API routes."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from materix.auth import require_user
from materix.database import get_db
from materix.models.user import User
from materix.pagination import Filters, filters_dependency
from materix.schemas.common import MessageOut
from materix.schemas.user import (
    PasswordChange,
    PublicUserEnvelope,
    PublicUserOut,
    UserEnvelope,
    UserOut,
    UserPage,
    UserUpdate,
)
from materix.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()

user_filters = filters_dependency(user_service.USER_SORT_SAFELIST, "id")


@router.get("", response_model=UserPage)
def search_users(
    q: Optional[str] = Query(None),
    filters: Filters = Depends(user_filters),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Search users by name or email, best match first."""
    users, meta = user_service.search_users(db, q, filters)
    return UserPage(users=[PublicUserOut.model_validate(u) for u in users], meta=meta)


@router.get("/me", response_model=UserEnvelope)
def get_me(current_user: User = Depends(require_user)):
    return UserEnvelope(user=UserOut.model_validate(current_user))


@router.patch("/me", response_model=UserEnvelope)
def update_me(payload: UserUpdate, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Update the caller's profile (partial update, optional version check)."""
    user = user_service.update_user(db, current_user, **payload.model_dump(exclude_unset=True))
    return UserEnvelope(user=UserOut.model_validate(user))


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    user_service.delete_user(db, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/me/password", response_model=MessageOut)
def change_password(payload: PasswordChange, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    user_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return MessageOut(message="password updated successfully")


@router.get("/{user_id}", response_model=PublicUserEnvelope)
def get_user(user_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Fetch another user's public profile."""
    return PublicUserEnvelope(user=PublicUserOut.model_validate(user_service.get_user(db, user_id)))
