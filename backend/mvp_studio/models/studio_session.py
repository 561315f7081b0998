"""StudioSession model: the single auto-save snapshot per (user, project)."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime, JSON, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mvp_studio.database import Base


class StudioSession(Base):
    __tablename__ = "mvp_studio_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    mvp_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("mvps.id", ondelete="CASCADE"), nullable=True
    )

    session_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    completed_stages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    stale_stages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    elapsed_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "mvp_id", name="uq_sessions_user_mvp"),
        Index("ix_sessions_last_saved", "user_id", "last_saved_at"),
    )

    def __repr__(self) -> str:
        return f"<StudioSession user={self.user_id[:8]} stage={self.current_stage}>"
