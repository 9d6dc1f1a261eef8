"""FriendPair ORM model, one row per unordered pair of users."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from materix.database import Base


class PairStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"


class FriendPair(Base):
    __tablename__ = "friends"
    __table_args__ = (
        # (A, B) and (B, A) normalise to the same (low, high) and collide here.
        UniqueConstraint("pair_low_id", "pair_high_id", name="unique_friendship_pair"),
        CheckConstraint("source_user_id <> destination_user_id", name="no_self_friendship"),
        CheckConstraint("status IN ('pending', 'accepted')", name="friend_status_valid"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_low_id = Column(Integer, nullable=False)
    pair_high_id = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=PairStatus.pending.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @classmethod
    def request(cls, source_user_id: int, destination_user_id: int) -> "FriendPair":
        """A pending request from ``source_user_id`` to ``destination_user_id``."""
        return cls(
            source_user_id=source_user_id,
            destination_user_id=destination_user_id,
            pair_low_id=min(source_user_id, destination_user_id),
            pair_high_id=max(source_user_id, destination_user_id),
            status=PairStatus.pending.value,
        )

    def involves(self, user_id: int) -> bool:
        return user_id in (self.source_user_id, self.destination_user_id)
