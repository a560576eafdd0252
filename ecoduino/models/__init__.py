"""SQLAlchemy models"""

from .user import User
from .greenhouse import Greenhouse, Ownership, ControlState
from .reading import SensorReading

__all__ = [
    "User",
    "Greenhouse",
    "Ownership",
    "ControlState",
    "SensorReading",
]
