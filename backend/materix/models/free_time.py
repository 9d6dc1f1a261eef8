"""FreeTime and FreeTimeViewer ORM models."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from materix.database import Base


class Visibility(str, enum.Enum):
    public = "public"
    private = "private"


class FreeTime(Base):
    __tablename__ = "free_times"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="free_time_valid_range"),
        CheckConstraint("visibility IN ('public', 'private')", name="free_time_visibility_valid"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    visibility = Column(String(10), nullable=False, default=Visibility.public.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    version = Column(Integer, nullable=False)

    viewers = relationship(
        "FreeTimeViewer",
        back_populates="free_time",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def viewer_ids(self) -> list[int]:
        return sorted(viewer.user_id for viewer in self.viewers)


class FreeTimeViewer(Base):
    """Explicit grant letting one user see a private window."""

    __tablename__ = "free_time_viewers"

    free_time_id = Column(Integer, ForeignKey("free_times.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    free_time = relationship("FreeTime", back_populates="viewers")
