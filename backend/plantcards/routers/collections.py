"""Collection endpoints: curated groupings of plants."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plantcards.audit import entity_to_dict, log_change
from plantcards.auth import can_manage, get_current_user, get_optional_user
from plantcards.database import get_db
from plantcards.models import Collection, CollectionPlant, User
from plantcards.schemas import (
    CollectionCreate,
    CollectionDetail,
    CollectionPlantRequest,
    CollectionResponse,
    CollectionUpdate,
)
from plantcards.services.catalog import (
    build_context,
    collection_is_visible,
    get_accessible_plant,
    plant_card,
    visible_collections_query,
    visible_plants_query,
)
from plantcards.storage import ImageStorage, get_storage

router = APIRouter(prefix="/collections", tags=["collections"])


def _get_collection(db: Session, collection_id: int) -> Collection:
    collection = db.query(Collection).filter(Collection.id == collection_id).first()
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


def _get_managed_collection(db: Session, collection_id: int, user: User) -> Collection:
    collection = _get_collection(db, collection_id)
    if not can_manage(user, collection.user_id):
        raise HTTPException(status_code=403, detail="Not allowed to modify this collection")
    return collection


@router.get("", response_model=List[CollectionResponse])
def list_collections(db: Session = Depends(get_db), user: Optional[User] = Depends(get_optional_user)):
    return visible_collections_query(db, user).all()


@router.get("/{collection_id}", response_model=CollectionDetail)
def get_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    """A collection with the plants in it that the viewer may see."""
    collection = _get_collection(db, collection_id)
    if not collection_is_visible(collection, user):
        raise HTTPException(status_code=404, detail="Collection not found")

    plant_ids = {link.plant_id for link in collection.plant_links}
    plants = [p for p in visible_plants_query(db, user).all() if p.id in plant_ids]
    context = build_context(db, user)
    data = CollectionResponse.model_validate(collection).model_dump()
    data["plants"] = [plant_card(plant, storage, context, user) for plant in plants]
    return data


@router.post("", response_model=CollectionResponse, status_code=201)
def create_collection(
    data: CollectionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name must not be empty")

    collection = Collection(
        name=name,
        description=data.description,
        is_published=data.is_published,
        is_admin_collection=current_user.is_admin,
        user_id=current_user.id,
    )
    try:
        db.add(collection)
        db.flush()
        log_change(db, current_user, "collection", collection.id, None, "CREATE", None, entity_to_dict(collection))
        db.commit()
        db.refresh(collection)
    except Exception:
        db.rollback()
        raise
    return collection


@router.put("/{collection_id}", response_model=CollectionResponse)
def update_collection(
    collection_id: int,
    data: CollectionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = _get_managed_collection(db, collection_id, current_user)
    before = entity_to_dict(collection)

    if data.name is not None:
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="name must not be empty")
        collection.name = name
    if data.description is not None:
        collection.description = data.description.strip() or None
    if data.is_published is not None:
        collection.is_published = data.is_published

    try:
        db.flush()
        log_change(db, current_user, "collection", collection.id, None, "UPDATE", before, entity_to_dict(collection))
        db.commit()
        db.refresh(collection)
    except Exception:
        db.rollback()
        raise
    return collection


@router.delete("/{collection_id}", status_code=204)
def delete_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = _get_managed_collection(db, collection_id, current_user)
    before = entity_to_dict(collection)
    try:
        db.delete(collection)
        log_change(db, current_user, "collection", collection_id, None, "DELETE", before, None)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return None


@router.post("/{collection_id}/plants", response_model=CollectionResponse, status_code=201)
def add_plant(
    collection_id: int,
    data: CollectionPlantRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = _get_managed_collection(db, collection_id, current_user)
    get_accessible_plant(db, data.plant_id, current_user)

    existing = (
        db.query(CollectionPlant)
        .filter(CollectionPlant.collection_id == collection.id, CollectionPlant.plant_id == data.plant_id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="Plant is already in this collection")

    try:
        db.add(CollectionPlant(collection_id=collection.id, plant_id=data.plant_id))
        db.commit()
        db.refresh(collection)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Plant is already in this collection")
    except Exception:
        db.rollback()
        raise
    return collection


@router.delete("/{collection_id}/plants/{plant_id}", status_code=204)
def remove_plant(
    collection_id: int,
    plant_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = _get_managed_collection(db, collection_id, current_user)
    link = (
        db.query(CollectionPlant)
        .filter(CollectionPlant.collection_id == collection.id, CollectionPlant.plant_id == plant_id)
        .first()
    )
    if not link:
        raise HTTPException(status_code=404, detail="Plant is not in this collection")
    try:
        db.delete(link)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return None
