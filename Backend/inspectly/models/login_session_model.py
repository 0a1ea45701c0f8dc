from sqlalchemy import Column, String, DateTime, Boolean

from inspectly.database import Base
from inspectly.utils import new_id, utcnow


class LoginSession(Base):
    __tablename__ = "login_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    email = Column(String(150), nullable=False, index=True)
    logged_in_at = Column(DateTime, nullable=False, default=utcnow)
    logged_out_at = Column(DateTime, nullable=True)
    still_logged_in = Column(Boolean, nullable=False, default=True)
