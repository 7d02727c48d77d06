from plantcards.routers.auth import router as auth_router
from plantcards.routers.plants import router as plants_router
from plantcards.routers.dashboard import router as dashboard_router
from plantcards.routers.images import router as images_router
from plantcards.routers.collections import router as collections_router
from plantcards.routers.favorites import router as favorites_router
from plantcards.routers.sightings import router as sightings_router
from plantcards.routers.flashcards import router as flashcards_router, practice_router
from plantcards.routers.quiz import router as quiz_router
from plantcards.routers.profile import router as profile_router, settings_router

__all__ = [
    "auth_router", "plants_router", "dashboard_router", "images_router", "collections_router",
    "favorites_router", "sightings_router", "flashcards_router", "practice_router", "quiz_router",
    "profile_router", "settings_router",
]
