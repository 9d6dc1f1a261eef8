"""Password hashing (bcrypt via passlib) and signed tokens (JWT via python-jose)."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from materix.config import settings
from materix.errors import InvalidToken

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant-time comparison; burns a hash when there is nothing to compare."""
    if not password_hash:
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(password, password_hash)


def _standard_claims(subject: str, ttl: timedelta, token_type: str) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "sub": subject,
        "iat": now,
        "nbf": now,
        "exp": now + ttl,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "typ": token_type,
    }


def create_access_token(user) -> str:
    claims = _standard_claims(str(user.id), timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES), ACCESS)
    claims.update({
        "uuid": user.uuid,
        "username": user.name,
        "email": user.email,
        "avatar_url": user.avatar_url,
        "provider": user.provider,
    })
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def create_refresh_token(user) -> str:
    claims = _standard_claims(str(user.id), timedelta(hours=settings.REFRESH_TOKEN_TTL_HOURS), REFRESH)
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def new_token_pair(user) -> dict[str, str]:
    return {
        "access_token": create_access_token(user),
        "refresh_token": create_refresh_token(user),
        "token_type": "bearer",
    }


def decode_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """Verify signature, lifetime, issuer, audience and token type."""
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        raise InvalidToken() from exc
    if claims.get("typ") != expected_type:
        raise InvalidToken()
    return claims


def subject_id(claims: dict[str, Any]) -> int:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidToken() from exc
