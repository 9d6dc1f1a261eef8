"""User ORM model."""
from uuid import uuid4
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from materix.database import Base


class Provider(str, enum.Enum):
    email = "email"
    google = "google"
    github = "github"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="users_email_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    name = Column(String(500), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)  # NULL for OAuth-only accounts
    avatar_url = Column(String(1000), nullable=False, default="")
    provider = Column(String(20), nullable=False, default=Provider.email.value)
    activated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
