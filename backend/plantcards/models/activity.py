"""Per-user study activity: favorites, sightings, answers and view counters."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from plantcards.database import Base, utcnow


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "plant_id", name="uq_favorite_user_plant"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Sighting(Base):
    """A user-logged observation of a plant in the field."""

    __tablename__ = "sightings"

    id = Column(Integer, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True)
    observed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    is_testable = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    plant = relationship("Plant")


class FlashcardAnswer(Base):
    __tablename__ = "flashcard_answers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, nullable=True, index=True)
    is_correct = Column(Boolean, nullable=False)
    answered_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    plant = relationship("Plant")


class StudySession(Base):
    """How many times a user has flipped a plant's card."""

    __tablename__ = "study_sessions"
    __table_args__ = (UniqueConstraint("user_id", "plant_id", name="uq_study_user_plant"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False)
    count = Column(Integer, default=1, nullable=False)
    last_studied_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
