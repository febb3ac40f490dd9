"""
Authentication models.

This module defines the SQLAlchemy model for users.
"""
from datetime import datetime

import bcrypt
from sqlalchemy import Column, Integer, String, DateTime

from api_auth.base_microservice import Base


class User(Base):
    """User model for authentication."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def verify_password(self, password: str) -> bool:
        """Check if provided password matches the stored hash."""
        try:
            return bcrypt.checkpw(
                password.encode('utf-8'),
                self.hashed_password.encode('utf-8')
            )
        except ValueError:
            # Over-long password or corrupt hash
            return False

    @staticmethod
    def get_password_hash(password: str, rounds: int = 12) -> str:
        """Generate password hash using bcrypt."""
        return bcrypt.hashpw(
            password.encode('utf-8'),
            bcrypt.gensalt(rounds=rounds)
        ).decode('utf-8')
