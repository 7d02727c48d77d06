"""Audit log model for tracking catalog changes."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Uuid
from sqlalchemy.orm import relationship

from plantcards.database import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    entity_type = Column(String(50), nullable=False)  # 'plant', 'plant_image' or 'collection'
    entity_id = Column(Integer, nullable=False)
    plant_id = Column(Integer, nullable=True, index=True)  # For filtering by plant
    action = Column(String(20), nullable=False)  # 'CREATE', 'UPDATE', 'DELETE'
    diff_json = Column(JSON, nullable=False)  # {before: {...}, after: {...}}

    user = relationship("User")
