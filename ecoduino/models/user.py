"""User accounts (credentials only, no authorization data)"""

from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base
from ..utils import utcnow


class User(Base):
    """Registered user"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.id} {self.email}>"
