"""Auth API routes: signup, password login, token refresh and the OAuth callback."""
import hmac
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from materix.config import settings
from materix.database import get_db
from materix.errors import BadRequest, InvalidToken
from materix.models.user import User
from materix.schemas.token import RefreshRequest, TokenEnvelope, TokenPair
from materix.schemas.user import UserCreate, UserLogin
from materix.security import REFRESH, decode_token, new_token_pair, subject_id
from materix.services import user_service
from materix.services.oauth_service import OAuthClient, get_oauth_client

logger = logging.getLogger(__name__)
router = APIRouter()


def _tokens(user: User) -> TokenEnvelope:
    return TokenEnvelope(tokens=TokenPair(**new_token_pair(user)))


@router.post("/signup", response_model=TokenEnvelope, status_code=status.HTTP_201_CREATED)
def signup(payload: UserCreate, db: Session = Depends(get_db)):
    """Register a local account and sign it in."""
    user = user_service.register_user(db, payload.name, payload.email, payload.password)
    return _tokens(user)


@router.post("/login", response_model=TokenEnvelope)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.email, payload.password)
    logger.info("User %s logged in", user.id)
    return _tokens(user)


@router.post("/refresh", response_model=TokenEnvelope)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    """Trade a refresh token for a new pair."""
    claims = decode_token(payload.refresh_token, expected_type=REFRESH)
    user = db.query(User).filter(User.id == subject_id(claims)).first()
    if user is None:
        raise InvalidToken()
    return _tokens(user)


@router.get("/callback", response_model=TokenEnvelope)
def oauth_callback(
    code: str = Query(...),
    state: str = Query(...),
    provider: str = Query("google"),
    db: Session = Depends(get_db),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    """Complete an OAuth sign in and issue tokens for the matching account."""
    expected = settings.OAUTH2_CALLBACK_STATE
    if not expected or not hmac.compare_digest(state.encode(), expected.encode()):
        logger.warning("OAuth callback with invalid state")
        raise BadRequest("invalid oauth state")

    profile = oauth.authenticate(provider, code)
    user = user_service.login_with_oauth(db, profile.provider, profile.email, profile.name, profile.avatar_url)
    logger.info("User %s signed in with %s", user.id, provider)
    return _tokens(user)
