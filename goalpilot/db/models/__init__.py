"""ORM models exposed for metadata discovery."""
from goalpilot.db.models.friendship import Friendship
from goalpilot.db.models.goal import Goal
from goalpilot.db.models.sub_goal import SubGoal
from goalpilot.db.models.user import User

__all__ = [
    "Friendship",
    "Goal",
    "SubGoal",
    "User",
]
