"""Database utilities and models."""

from goalpilot.db.base import Base
from goalpilot.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
