"""Public plant catalog endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from plantcards.auth import get_optional_user
from plantcards.database import get_db
from plantcards.models import Collection, Plant, User
from plantcards.schemas import PlantDetail, PlantListResponse
from plantcards.services.catalog import (
    build_context,
    collection_is_visible,
    get_filters,
    plant_card,
    plant_is_visible,
    require_user_for,
    visible_plants_query,
)
from plantcards.services.filters import PlantFilters, apply_filters, serialize_filters_to_query
from plantcards.storage import ImageStorage, get_storage

router = APIRouter(prefix="/plants", tags=["plants"])


@router.get("", response_model=PlantListResponse)
def list_plants(
    filters: PlantFilters = Depends(get_filters),
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    """Visible plants narrowed by the filters in the query string."""
    require_user_for(filters, user)
    context = build_context(db, user)
    plants = apply_filters(visible_plants_query(db, user).all(), filters, context)
    return {
        "plants": [plant_card(plant, storage, context, user) for plant in plants],
        "count": len(plants),
        "query": serialize_filters_to_query(filters),
        "filters": filters,
    }


@router.get("/{slug}", response_model=PlantDetail)
def get_plant(
    slug: str,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    plant = db.query(Plant).filter(Plant.slug == slug).first()
    if not plant or not plant_is_visible(plant, user):
        raise HTTPException(status_code=404, detail="Plant not found")

    collections = (
        db.query(Collection)
        .filter(Collection.id.in_(plant.collection_ids), Collection.is_published.is_(True))
        .order_by(Collection.name)
        .all()
    ) if plant.collection_ids else []

    data = plant_card(plant, storage, build_context(db, user), user)
    data["collections"] = [
        {"id": c.id, "name": c.name} for c in collections if collection_is_visible(c, user)
    ]
    return data
