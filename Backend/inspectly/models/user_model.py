from sqlalchemy import Column, String, DateTime, ForeignKey

from inspectly.database import Base
from inspectly.utils import new_id, utcnow


class User(Base):
    """Auth identity. The matching profile row shares its id."""
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(150), unique=True, nullable=False, index=True)

    # Stored credentials
    password_hash = Column(String(255), nullable=False)
    password_salt = Column(String(64), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("auth_users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(150), nullable=False, index=True)
    full_name = Column(String(255), nullable=False, default="")
    # null until the user creates or joins an organization
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=True, index=True)
    role = Column(String(16), nullable=False, default="user")

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def as_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "organization_id": self.organization_id,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
