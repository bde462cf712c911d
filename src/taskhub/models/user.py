import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base


class Role(str, enum.Enum):
    """Roles a user may hold; admins bypass task ownership checks."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """SQLAlchemy model for application users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), default=Role.USER.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
