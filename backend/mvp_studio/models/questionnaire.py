"""Questionnaire model: validation answers captured in wizard stage 2."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from mvp_studio.database import Base


class Questionnaire(Base):
    __tablename__ = "questionnaire"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    mvp_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("mvps.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    idea_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    talked_to_people: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    motivation: Mapped[str | None] = mapped_column(Text, nullable=True)
    preferred_ai_tool: Mapped[str | None] = mapped_column(String(20), nullable=True)
    project_complexity: Mapped[str | None] = mapped_column(String(20), nullable=True)  # simple | medium | complex
    technical_experience: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    mvp = relationship("Mvp", back_populates="questionnaire")
