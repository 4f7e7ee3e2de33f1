"""Friendship ORM model; a single row links both users symmetrically."""
from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from goalpilot.db.base import Base


class Friendship(Base):
    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("first_user_id", "second_user_id", name="uq_friendships_pair"),
        Index("ix_friendships_first_user_id", "first_user_id"),
        Index("ix_friendships_second_user_id", "second_user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    second_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
