"""Sub-goal ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, text as sa_text
from sqlalchemy.orm import relationship

from goalpilot.db.base import Base


class SubGoal(Base):
    __tablename__ = "sub_goals"
    __table_args__ = (Index("ix_sub_goals_goal_id", "goal_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=False)
    is_completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    completed_at = Column(DateTime(timezone=True), nullable=True)

    goal = relationship("Goal", back_populates="sub_goals")
