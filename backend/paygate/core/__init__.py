"""Core module for configuration and utilities."""

from paygate.core.config import settings
from paygate.core.database import Base, get_session

__all__ = [
    "settings",
    "Base",
    "get_session",
]
