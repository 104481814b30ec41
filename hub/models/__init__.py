"""Database models."""
from hub.models.base import Base, init_db
from hub.models.user import User
from hub.models.profile import Profile
from hub.models.role import RoleAssignment, RoleChange
from hub.models.event import Event
from hub.models.registration import Registration
from hub.models.team import Team, TeamMember
from hub.models.announcement import Announcement

__all__ = [
    "Base",
    "User",
    "Profile",
    "RoleAssignment",
    "RoleChange",
    "Event",
    "Registration",
    "Team",
    "TeamMember",
    "Announcement",
    "init_db",
]
