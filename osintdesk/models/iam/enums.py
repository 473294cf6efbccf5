"""
Enumerations for the IAM system.
"""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of profile roles"""

    USER = "user"
    PRO = "pro"
    ADMIN = "admin"
