from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from plantcards.database import Base, utcnow


class Plant(Base):
    """One taxonomic plant entry with naming and descriptive metadata."""

    __tablename__ = "plants"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    scientific_name = Column(String(255), nullable=False, index=True)
    common_name = Column(String(255), nullable=True)
    family = Column(String(100), nullable=True)
    genus = Column(String(100), nullable=True)
    specific_epithet = Column(String(100), nullable=True)
    infraspecies_rank = Column(String(20), nullable=True)  # 'subsp.', 'var.', ...
    infraspecies_epithet = Column(String(100), nullable=True)
    variety = Column(String(100), nullable=True)
    forma = Column(String(100), nullable=True)
    cultivar = Column(String(100), nullable=True)
    hybrid_marker = Column(String(5), nullable=True)  # 'x' or NULL
    hybrid_marker_position = Column(String(30), nullable=True)  # before_genus | between_genus_species
    native_to = Column(String(255), nullable=True)
    bloom_period = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    is_published = Column(Boolean, default=True, nullable=False, index=True)
    is_admin_plant = Column(Boolean, default=False, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    images = relationship("PlantImage", back_populates="plant", cascade="all, delete-orphan",
                          order_by=lambda: [PlantImage.is_primary.desc(), PlantImage.id])
    collection_links = relationship("CollectionPlant", back_populates="plant", cascade="all, delete-orphan")

    @property
    def collection_ids(self) -> list[int]:
        return [link.collection_id for link in self.collection_links]

    def __repr__(self):
        return f"<Plant(id={self.id}, scientific_name='{self.scientific_name}')>"


class PlantImage(Base):
    __tablename__ = "plant_images"

    id = Column(Integer, primary_key=True, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    path = Column(String(500), nullable=False)
    file_size = Column(BigInteger, nullable=True)
    content_type = Column(String(100), nullable=False, default="image/webp")
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    plant = relationship("Plant", back_populates="images")
