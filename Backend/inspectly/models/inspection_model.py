"""
SQLAlchemy model for the inspections table.
Responses are stored as JSON keyed by question id; each value is a tagged
response (``{"type": ..., "value": ...}``), photos base64-encoded.
"""

from sqlalchemy import Column, String, DateTime, JSON, ForeignKey

from inspectly.database import Base
from inspectly.utils import new_id, utcnow


class Inspection(Base):
    __tablename__ = "inspections"
    __realtime__ = True

    id = Column(String(36), primary_key=True, default=new_id)
    # not a foreign key: templates may be deleted while their inspections remain
    template_id = Column(String(36), nullable=False, index=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    inspector_name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False, default="")
    status = Column(String(16), nullable=False, default="incomplete", index=True)
    date = Column(DateTime, nullable=False, default=utcnow)
    responses = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<Inspection(id='{self.id}', template_id='{self.template_id}', "
            f"status='{self.status}', date={self.date})>"
        )

    def as_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "organization_id": self.organization_id,
            "inspector_name": self.inspector_name,
            "location": self.location,
            "status": self.status,
            "date": self.date.isoformat() if self.date else None,
            "responses": dict(self.responses or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
