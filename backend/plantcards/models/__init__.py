"""All SQLAlchemy models – re-exported for Alembic and app use."""

from plantcards.models.user import User, RefreshToken, Profile
from plantcards.models.plant import Plant, PlantImage
from plantcards.models.collection import Collection, CollectionPlant
from plantcards.models.activity import Favorite, Sighting, FlashcardAnswer, StudySession
from plantcards.models.audit_log import AuditLog

__all__ = [
    "User", "RefreshToken", "Profile",
    "Plant", "PlantImage",
    "Collection", "CollectionPlant",
    "Favorite", "Sighting", "FlashcardAnswer", "StudySession",
    "AuditLog",
]
