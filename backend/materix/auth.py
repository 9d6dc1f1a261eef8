"""Who is calling: ``Anonymous`` or ``Authenticated(user)``.

``get_identity`` never guesses. No Authorization header means anonymous; a
header that is present but unusable is rejected outright.
"""
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from materix.database import get_db
from materix.errors import AuthenticationRequired, InvalidToken
from materix.models.user import User
from materix.security import ACCESS, decode_token, subject_id


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class Authenticated:
    user: User


Identity = Union[Anonymous, Authenticated]


def _bearer_token(authorization: str) -> str:
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise InvalidToken()
    return parts[1]


def get_identity(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Identity:
    if authorization is None:
        return Anonymous()
    claims = decode_token(_bearer_token(authorization), expected_type=ACCESS)
    user = db.query(User).filter(User.id == subject_id(claims)).first()
    if user is None:
        raise InvalidToken()
    return Authenticated(user=user)


def require_user(identity: Identity = Depends(get_identity)) -> User:
    if isinstance(identity, Authenticated):
        return identity.user
    raise AuthenticationRequired()
