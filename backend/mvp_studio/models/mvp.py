"""Mvp model: a user's app-idea-to-prompt project record."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Text, Integer, Boolean, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from mvp_studio.database import Base


class Mvp(Base):
    __tablename__ = "mvps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    app_name: Mapped[str] = mapped_column(String(255), nullable=False)
    platforms: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # web | mobile
    style: Mapped[str] = mapped_column(String(50), nullable=False)
    style_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    app_description: Mapped[str] = mapped_column(Text, nullable=False)
    target_users: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Yet To Build")
    completion_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_mvp_studio_project: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Stage documents (schema-versioned JSON, see schemas.studio)
    app_blueprint: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    screen_prompts: Mapped[list | None] = mapped_column(JSON, nullable=True)
    app_flow: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    export_prompts: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    questionnaire = relationship(
        "Questionnaire", back_populates="mvp", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_mvps_user_created", "user_id", "created_at"),
        Index("ix_mvps_status", "status"),
    )

    def advance_completion(self, stage: int) -> None:
        """Raise the stored completion stage; it never moves backwards."""
        self.completion_stage = max(self.completion_stage or 1, stage)

    def __repr__(self) -> str:
        return f"<Mvp {self.app_name!r} ({self.id[:8]})>"
