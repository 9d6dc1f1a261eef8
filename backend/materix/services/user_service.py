"""User directory: registration, credentials, profile edits and search."""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from materix.database import commit
from materix.errors import (
    ConstraintViolation,
    DuplicateEmail,
    EditConflict,
    InvalidCredentials,
    RecordNotFound,
)
from materix.models.user import Provider, User
from materix.pagination import Filters, Meta, paginate
from materix.security import hash_password, verify_password
from materix.services.search import text_search
from materix.validator import EMAIL_RX, Validator, matches

logger = logging.getLogger(__name__)

USER_SORT_SAFELIST = ("id", "name", "email", "created_at", "-id", "-name", "-email", "-created_at")

MAX_NAME_BYTES = 500
MIN_PASSWORD_BYTES = 8
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything longer


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(v: Validator, email: Optional[str]) -> None:
    v.check(bool(email), "email", "must be provided")
    v.check(matches(email or "", EMAIL_RX), "email", "must be a valid email address")


def validate_password(v: Validator, password: Optional[str], field: str = "password") -> None:
    v.check(bool(password), field, "must be provided")
    size = len((password or "").encode("utf-8"))
    v.check(size >= MIN_PASSWORD_BYTES, field, "must be at least 8 bytes long")
    v.check(size <= MAX_PASSWORD_BYTES, field, "must not be more than 72 bytes long")


def validate_user(v: Validator, user: User) -> None:
    v.check(bool(user.name and user.name.strip()), "name", "must be provided")
    v.check(len((user.name or "").encode("utf-8")) <= MAX_NAME_BYTES, "name", "must not be more than 500 bytes long")
    validate_email(v, user.email)


def _commit_user(db: Session) -> None:
    try:
        commit(db)
    except ConstraintViolation as exc:
        if exc.kind == "unique" and exc.name in (None, "users_email_key"):
            raise DuplicateEmail() from exc
        raise


def register_user(db: Session, name: str, email: str, password: str) -> User:
    """Create a local (provider ``email``) account, not yet activated."""
    user = User(
        name=(name or "").strip(),
        email=normalize_email(email or ""),
        provider=Provider.email.value,
        activated=False,
        avatar_url="",
    )
    v = Validator()
    validate_user(v, user)
    validate_password(v, password)
    v.raise_if_invalid()

    user.password_hash = hash_password(password)
    db.add(user)
    _commit_user(db)
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user owning ``email``/``password``.

    Unknown email and wrong password fail identically.
    """
    user = db.query(User).filter(User.email == normalize_email(email or "")).first()
    if user is None:
        verify_password(password or "", None)
        raise InvalidCredentials()
    if not verify_password(password or "", user.password_hash):
        raise InvalidCredentials()
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise RecordNotFound()
    return user


def get_user_by_email(db: Session, email: str) -> User:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if not user:
        raise RecordNotFound()
    return user


def update_user(
    db: Session,
    user: User,
    name: Optional[str] = None,
    email: Optional[str] = None,
    avatar_url: Optional[str] = None,
    version: Optional[int] = None,
) -> User:
    """Patch the supplied profile fields with an optimistic version check."""
    if version is not None and version != user.version:
        raise EditConflict()

    if name is not None:
        user.name = name.strip()
    if email is not None:
        user.email = normalize_email(email)
    if avatar_url is not None:
        user.avatar_url = avatar_url.strip()

    v = Validator()
    validate_user(v, user)
    if not v.valid():
        db.rollback()
        v.raise_if_invalid()

    user.updated_at = datetime.now(timezone.utc)
    _commit_user(db)
    db.refresh(user)
    logger.info("Updated user %s to version %s", user.id, user.version)
    return user


def change_password(db: Session, user: User, current_password: Optional[str], new_password: str) -> None:
    v = Validator()
    if user.password_hash:
        v.check(
            bool(current_password) and verify_password(current_password, user.password_hash),
            "current_password",
            "is incorrect",
        )
    validate_password(v, new_password, field="new_password")
    v.raise_if_invalid()

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.now(timezone.utc)
    commit(db)
    logger.info("Password changed for user %s", user.id)


def delete_user(db: Session, user_id: int) -> None:
    """Delete a user; friend pairs, windows and grants go with it."""
    user = get_user(db, user_id)
    db.delete(user)
    commit(db)
    logger.info("Deleted user %s", user_id)


def search_users(db: Session, query: Optional[str], filters: Filters) -> tuple[list[User], Meta]:
    condition, rank = text_search(query, User.name, User.email)
    columns = {"id": User.id, "name": User.name, "email": User.email, "created_at": User.created_at}
    order = [filters.order_by(columns), User.id.asc()]
    if rank is not None:
        order.insert(0, rank.desc())
    q = db.query(func.count().over(), User).filter(condition).order_by(*order)
    rows, meta = paginate(q, filters)
    return [user for _, user in rows], meta


def create_oauth_user(db: Session, provider: str, email: str, name: str, avatar_url: str = "") -> User:
    user = User(
        name=(name or email).strip(),
        email=normalize_email(email),
        provider=provider,
        avatar_url=avatar_url or "",
        activated=True,
    )
    v = Validator()
    validate_user(v, user)
    v.raise_if_invalid()

    db.add(user)
    _commit_user(db)
    db.refresh(user)
    logger.info("Created %s user %s", provider, user.id)
    return user


def login_with_oauth(db: Session, provider: str, email: str, name: str, avatar_url: str = "") -> User:
    """Find the account for a provider-verified email, creating it on first sight."""
    try:
        return get_user_by_email(db, email)
    except RecordNotFound:
        pass
    try:
        return create_oauth_user(db, provider, email, name, avatar_url)
    except DuplicateEmail:
        # Lost a race with a concurrent first login for the same address.
        return get_user_by_email(db, email)
