"""
User Data Models

Contains user-related data structures.
"""

from dataclasses import dataclass
from typing import Optional
from datetime import datetime


@dataclass
class User:
    """User data model."""
    id: str
    name: str
    email: str
    role: str = "player"
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
