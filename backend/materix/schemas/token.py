"""Pydantic schemas for issued tokens."""
from pydantic import BaseModel


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenEnvelope(BaseModel):
    tokens: TokenPair


class RefreshRequest(BaseModel):
    refresh_token: str
