from sqlalchemy import Column, String, DateTime, Boolean

from inspectly.database import Base
from inspectly.utils import new_id, utcnow


class PasswordReset(Base):
    """One-time token issued by a password-reset request."""
    __tablename__ = "password_resets"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
