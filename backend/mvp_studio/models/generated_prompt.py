"""GeneratedPrompt model: versioned prompt documents produced by the studio.

Content is immutable once written. Only the feedback fields (rating,
feedback text, favorite) and the archival flag change afterwards; a new
version of the same logical prompt (``prompt_key``) is a new row and
demotes the previous one from ``is_current_version``.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Float, Boolean, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from mvp_studio.database import Base


class GeneratedPrompt(Base):
    __tablename__ = "rag_generated_prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    mvp_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("mvps.id", ondelete="CASCADE"), nullable=True
    )
    prompt_key: Mapped[str] = mapped_column(String(120), nullable=False)  # e.g. "screen_prompt:login"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    prompt_type: Mapped[str] = mapped_column(String(20), nullable=False)  # blueprint | screen_prompt | unified | export
    target_tool: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    stage_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    screen_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Provenance
    is_rag_enhanced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    enhancement_suggestions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tool_optimizations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    knowledge_sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_current_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Feedback / archival (the only mutable fields)
    user_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_prompts_user_mvp", "user_id", "mvp_id"),
        Index("ix_prompts_key_current", "mvp_id", "prompt_key", "is_current_version"),
    )

    def __repr__(self) -> str:
        return f"<GeneratedPrompt {self.prompt_key!r} v{self.version}>"
