"""PromptTemplate model: reusable, versioned prompt templates.

Templates are a shared library: every user can list and render active
templates, only the creator can edit or retire one. Editing the content
bumps ``version``; retiring sets ``is_active`` to False.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Float, Boolean, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from mvp_studio.database import Base


class PromptTemplate(Base):
    __tablename__ = "rag_prompt_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)

    template_name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_content: Mapped[str] = mapped_column(Text, nullable=False)  # {{variable}} placeholders
    template_type: Mapped[str] = mapped_column(String(20), nullable=False)  # skeleton | feature | optimization | debugging
    target_tool: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    use_case: Mapped[str] = mapped_column(String(255), nullable=False)
    project_complexity: Mapped[str] = mapped_column(String(10), nullable=False)
    required_variables: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    optional_variables: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Performance
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    success_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_templates_active_tool", "is_active", "target_tool"),
        Index("ix_templates_created_by", "created_by"),
    )

    def __repr__(self) -> str:
        return f"<PromptTemplate {self.template_name!r} v{self.version}>"
