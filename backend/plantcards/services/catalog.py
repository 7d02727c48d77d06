"""Visibility rules, per-viewer filter lookups and plant card serialization."""
from typing import Any, Dict, List, Optional, Set

from fastapi import HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from plantcards.auth import can_manage
from plantcards.config import get_settings
from plantcards.models import Collection, Favorite, FlashcardAnswer, Plant, PlantImage, Profile, Sighting, User
from plantcards.services.filters import FilterContext, PlantFilters, parse_filters_from_query
from plantcards.services.plant_names import plant_display_name, render_plant_name
from plantcards.services.study import answer_stats, plants_needing_practice
from plantcards.storage import ImageStorage, bucket_for


def _shows_admin(user: Optional[User], flag: str) -> bool:
    if user is None or user.profile is None:
        return True
    return bool(getattr(user.profile, flag))


# === Visibility ===
def visible_plants_query(db: Session, user: Optional[User]) -> Query:
    """Published plants the viewer may see, ordered by scientific name.

    Anonymous viewers see admin plants only. Signed-in viewers also see
    their own plants, and only those when they hid admin plants.
    """
    query = db.query(Plant).options(
        selectinload(Plant.images), selectinload(Plant.collection_links)
    ).filter(Plant.is_published.is_(True))
    if user is None:
        query = query.filter(Plant.is_admin_plant.is_(True))
    elif not _shows_admin(user, "show_admin_plants"):
        query = query.filter(Plant.user_id == user.id)
    else:
        query = query.filter(or_(Plant.is_admin_plant.is_(True), Plant.user_id == user.id))
    return query.order_by(Plant.scientific_name, Plant.id)


def plant_is_visible(plant: Plant, user: Optional[User]) -> bool:
    if not plant.is_published:
        return False
    own = user is not None and plant.user_id == user.id
    if user is not None and not _shows_admin(user, "show_admin_plants"):
        return own
    return plant.is_admin_plant or own


def get_accessible_plant(db: Session, plant_id: int, user: User) -> Plant:
    """A plant the user can see or manage, else 404."""
    plant = db.query(Plant).filter(Plant.id == plant_id).first()
    if not plant or not (plant_is_visible(plant, user) or can_manage(user, plant.user_id)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plant not found")
    return plant


def visible_collections_query(db: Session, user: Optional[User]) -> Query:
    query = db.query(Collection).options(selectinload(Collection.plant_links)).filter(
        Collection.is_published.is_(True)
    )
    if user is None:
        query = query.filter(Collection.is_admin_collection.is_(True))
    elif not _shows_admin(user, "show_admin_collections"):
        query = query.filter(Collection.user_id == user.id)
    else:
        query = query.filter(or_(Collection.is_admin_collection.is_(True), Collection.user_id == user.id))
    return query.order_by(Collection.name, Collection.id)


def collection_is_visible(collection: Collection, user: Optional[User]) -> bool:
    own = user is not None and collection.user_id == user.id
    if own:
        return True
    if not collection.is_published:
        return False
    if user is not None and not _shows_admin(user, "show_admin_collections"):
        return False
    return collection.is_admin_collection


# === Per-viewer lookups ===
def favorite_ids(db: Session, user: User) -> Set[int]:
    rows = db.query(Favorite.plant_id).filter(Favorite.user_id == user.id).all()
    return {row.plant_id for row in rows}


def user_answers(db: Session, user: User) -> List[FlashcardAnswer]:
    return db.query(FlashcardAnswer).filter(FlashcardAnswer.user_id == user.id).all()


def user_sighting_counts(db: Session, user: User) -> Dict[int, int]:
    rows = (
        db.query(Sighting.plant_id, func.count(Sighting.id))
        .filter(Sighting.user_id == user.id)
        .group_by(Sighting.plant_id)
        .all()
    )
    return {plant_id: count for plant_id, count in rows}


def testable_plant_ids(db: Session, user: User) -> Set[int]:
    rows = (
        db.query(Sighting.plant_id)
        .filter(Sighting.user_id == user.id, Sighting.is_testable.is_(True))
        .distinct()
        .all()
    )
    return {row.plant_id for row in rows}


def global_sighting_counts(
    db: Session, user: Optional[User], plant_ids: Optional[List[int]] = None
) -> Dict[int, int]:
    """Sightings per plant across all users.

    Admin sightings are left out for viewers who turned ``show_admin_sightings`` off.
    """
    query = db.query(Sighting.plant_id, func.count(Sighting.id))
    if not _shows_admin(user, "show_admin_sightings"):
        query = query.outerjoin(Profile, Profile.id == Sighting.user_id).filter(
            or_(Profile.id.is_(None), Profile.is_admin.is_(False))
        )
    if plant_ids:
        query = query.filter(Sighting.plant_id.in_(plant_ids))
    return {plant_id: count for plant_id, count in query.group_by(Sighting.plant_id).all()}


def practice_plant_rows(db: Session, user: User) -> List[Dict[str, Any]]:
    settings = get_settings()
    return plants_needing_practice(
        user_answers(db, user),
        min_attempts=settings.practice_min_attempts,
        success_threshold=settings.practice_success_threshold,
        days_ago=settings.practice_days,
    )


def build_context(
    db: Session, user: Optional[User], use_practice_query: bool = False
) -> FilterContext:
    context = FilterContext(global_sightings=global_sighting_counts(db, user))
    if user is None:
        return context
    context.favorites = favorite_ids(db, user)
    context.answered = answer_stats(user_answers(db, user))
    context.user_sightings = user_sighting_counts(db, user)
    context.testable = testable_plant_ids(db, user)
    if use_practice_query:
        context.practice_ids = {row["plant_id"] for row in practice_plant_rows(db, user)}
    return context


# === Filters from the request ===
def get_filters(request: Request) -> PlantFilters:
    try:
        return parse_filters_from_query(request.url.query)
    except ValidationError as exc:
        message = "; ".join(error["msg"] for error in exc.errors())
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def require_user_for(filters: PlantFilters, user: Optional[User]) -> None:
    if filters.needs_user and user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to use personal filters",
        )


# === Serialization ===
def image_url(storage: ImageStorage, plant: Plant, image: PlantImage) -> str:
    return storage.public_url(bucket_for(plant), image.path)


def image_payload(storage: ImageStorage, plant: Plant, image: PlantImage) -> dict:
    return {
        "id": image.id,
        "plant_id": image.plant_id,
        "filename": image.filename,
        "path": image.path,
        "file_size": image.file_size,
        "content_type": image.content_type,
        "is_primary": image.is_primary,
        "created_at": image.created_at,
        "url": image_url(storage, plant, image),
    }


def primary_image_url(storage: ImageStorage, plant: Plant) -> Optional[str]:
    images = list(plant.images)
    if not images:
        return plant.image_url
    primary = next((image for image in images if image.is_primary), images[0])
    return image_url(storage, plant, primary)


def plant_card(
    plant: Plant,
    storage: ImageStorage,
    context: Optional[FilterContext] = None,
    user: Optional[User] = None,
) -> dict:
    context = context or FilterContext()
    data = {column.name: getattr(plant, column.name) for column in Plant.__table__.columns}
    data.update(
        name_html=render_plant_name(plant),
        display_name=plant_display_name(plant),
        images=[image_payload(storage, plant, image) for image in plant.images],
        primary_image_url=primary_image_url(storage, plant),
        collection_ids=plant.collection_ids,
        sightings_count=(context.global_sightings or {}).get(plant.id, 0),
    )
    if user is not None:
        data.update(
            is_favorite=plant.id in (context.favorites or set()),
            is_testable=plant.id in context.testable,
            my_sightings_count=(context.user_sightings or {}).get(plant.id, 0),
        )
    return data
