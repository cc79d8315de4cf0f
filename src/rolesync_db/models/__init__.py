"""Central exports for role sync SQLAlchemy models."""

from .config import Config
from .rank import Rank
from .role import Role, RoleGroupTier, user_roles
from .user import User
from .workspace import Workspace

__all__ = [
    "Config",
    "Rank",
    "Role",
    "RoleGroupTier",
    "User",
    "Workspace",
    "user_roles",
]
