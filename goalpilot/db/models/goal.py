"""Goal ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from goalpilot.db.base import Base


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_user_id", "user_id"),
        Index("ix_goals_privacy", "privacy"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(length=100), nullable=False)
    urgency_level = Column(String(length=16), nullable=False, server_default=sa_text("'AVERAGE'"))
    specific = Column(Text, nullable=True)
    measurable = Column(Text, nullable=True)
    attainable = Column(Text, nullable=True)
    relevant = Column(Text, nullable=True)
    award = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    privacy = Column(String(length=16), nullable=False, server_default=sa_text("'PRIVATE'"))
    deadline = Column(DateTime(timezone=True), nullable=False)
    image_url = Column(Text, nullable=True)
    is_completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    sub_goals = relationship(
        "SubGoal",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="SubGoal.deadline",
    )
