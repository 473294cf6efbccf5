"""
IAM models: a single Profile table with a role column.
"""

from .enums import UserRole
from .users import Profile

__all__ = [
    "UserRole",
    "Profile",
]
