"""
SQLAlchemy model for the templates table.
A template is a named, ordered list of questions; the list is stored as JSON and
replaced as a whole on update.
"""

from sqlalchemy import Column, String, DateTime, JSON, ForeignKey

from inspectly.database import Base
from inspectly.utils import new_id, utcnow


class Template(Base):
    __tablename__ = "templates"
    __realtime__ = True

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    questions = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Template(id='{self.id}', name='{self.name}', organization_id='{self.organization_id}')>"

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "organization_id": self.organization_id,
            "questions": list(self.questions or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
