from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from plantcards.database import Base, utcnow


class Collection(Base):
    """Named grouping of plants curated by a user or an admin."""

    __tablename__ = "collections"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_published = Column(Boolean, default=True, nullable=False)
    is_admin_collection = Column(Boolean, default=False, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    plant_links = relationship("CollectionPlant", back_populates="collection", cascade="all, delete-orphan")

    @property
    def plant_count(self) -> int:
        return len(self.plant_links)


class CollectionPlant(Base):
    __tablename__ = "collection_plants"
    __table_args__ = (UniqueConstraint("collection_id", "plant_id", name="uq_collection_plant"),)

    id = Column(Integer, primary_key=True)
    collection_id = Column(Integer, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True)

    collection = relationship("Collection", back_populates="plant_links")
    plant = relationship("Plant", back_populates="collection_links")
