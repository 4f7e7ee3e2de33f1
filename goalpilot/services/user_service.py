"""Helpers for working with users."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from goalpilot.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID, name: Optional[str] = None) -> User:
    """Fetch an existing user or create the row; a given name fills an empty one."""
    user = db.get(User, user_id)
    if user:
        if name and not user.name:
            user.name = name
        return user

    user = User(id=user_id, name=name)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
