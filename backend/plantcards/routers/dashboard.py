"""Plant administration endpoints with full CRUD and audit logging."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from plantcards.audit import entity_to_dict, log_change
from plantcards.auth import can_manage, get_current_user
from plantcards.database import get_db
from plantcards.models import AuditLog, Favorite, Plant, User
from plantcards.schemas import AuditEntryResponse, PlantCard, PlantCreate, PlantUpdate
from plantcards.services.catalog import build_context, plant_card
from plantcards.services.plant_names import slugify
from plantcards.storage import ImageStorage, bucket_for, get_storage

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
logger = logging.getLogger("plantcards.dashboard")


def normalize_text(value: Optional[str]) -> Optional[str]:
    """Trim incoming string data; blank strings become None."""
    if value is None:
        return None
    return value.strip() or None


def unique_slug(db: Session, base: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(base) or "plant"
    candidate, n = base, 2
    while True:
        query = db.query(Plant.id).filter(Plant.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Plant.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{n}"
        n += 1


def slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Plant.id).filter(Plant.slug == slug)
    if exclude_id is not None:
        query = query.filter(Plant.id != exclude_id)
    return query.first() is not None


def get_managed_plant(db: Session, plant_id: int, user: User) -> Plant:
    """The plant when the user owns it or is an admin; 404/403 otherwise."""
    plant = db.query(Plant).filter(Plant.id == plant_id).first()
    if not plant:
        raise HTTPException(status_code=404, detail="Plant not found")
    if not can_manage(user, plant.user_id):
        raise HTTPException(status_code=403, detail="Not allowed to modify this plant")
    return plant


@router.get("/plants", response_model=List[PlantCard])
def list_managed_plants(
    favorites_only: bool = False,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """All plants the user may manage, published or not."""
    query = db.query(Plant).options(selectinload(Plant.images), selectinload(Plant.collection_links))
    if not current_user.is_admin:
        query = query.filter(Plant.user_id == current_user.id)
    if favorites_only:
        query = query.join(Favorite, Favorite.plant_id == Plant.id).filter(Favorite.user_id == current_user.id)
    plants = query.order_by(Plant.scientific_name, Plant.id).all()
    context = build_context(db, current_user)
    return [plant_card(plant, storage, context, current_user) for plant in plants]


@router.post("/plants", response_model=PlantCard, status_code=201)
def create_plant(
    data: PlantCreate,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    scientific_name = normalize_text(data.scientific_name)
    if not scientific_name:
        raise HTTPException(status_code=400, detail="scientific_name must not be empty")

    if data.slug:
        slug = slugify(data.slug)
        if not slug:
            raise HTTPException(status_code=400, detail="slug must contain letters or digits")
        if slug_taken(db, slug):
            raise HTTPException(status_code=409, detail="Plant with this slug already exists")
    else:
        slug = unique_slug(db, scientific_name)

    fields = {key: normalize_text(value) for key, value in data.model_dump(
        exclude={"scientific_name", "slug", "is_published"}).items()}
    plant = Plant(
        **fields,
        scientific_name=scientific_name,
        slug=slug,
        is_published=data.is_published,
        is_admin_plant=current_user.is_admin,
        user_id=current_user.id,
    )

    try:
        db.add(plant)
        db.flush()
        log_change(db, current_user, "plant", plant.id, plant.id, "CREATE", None, entity_to_dict(plant))
        db.commit()
        db.refresh(plant)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Plant with this slug already exists")
    except Exception:
        db.rollback()
        raise

    return plant_card(plant, storage)


@router.put("/plants/{plant_id}", response_model=PlantCard)
def update_plant(
    plant_id: int,
    data: PlantUpdate,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Partial update; the slug only changes when one is sent."""
    plant = get_managed_plant(db, plant_id, current_user)
    before = entity_to_dict(plant)
    updates = data.model_dump(exclude_unset=True)

    if "scientific_name" in updates:
        scientific_name = normalize_text(updates.pop("scientific_name"))
        if not scientific_name:
            raise HTTPException(status_code=400, detail="scientific_name must not be empty")
        plant.scientific_name = scientific_name

    if "slug" in updates:
        slug = slugify(updates.pop("slug"))
        if not slug:
            raise HTTPException(status_code=400, detail="slug must contain letters or digits")
        if slug_taken(db, slug, exclude_id=plant.id):
            raise HTTPException(status_code=409, detail="Plant with this slug already exists")
        plant.slug = slug

    if "is_published" in updates:
        published = updates.pop("is_published")
        if published is not None:
            plant.is_published = published

    for key, value in updates.items():
        setattr(plant, key, normalize_text(value))

    try:
        db.flush()
        log_change(db, current_user, "plant", plant.id, plant.id, "UPDATE", before, entity_to_dict(plant))
        db.commit()
        db.refresh(plant)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Plant with this slug already exists")
    except Exception:
        db.rollback()
        raise

    return plant_card(plant, storage, build_context(db, current_user), current_user)


@router.delete("/plants/{plant_id}", status_code=204)
def delete_plant(
    plant_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Delete a plant with its images, collection links and study records."""
    plant = get_managed_plant(db, plant_id, current_user)
    before = entity_to_dict(plant)
    bucket = bucket_for(plant)
    paths = [image.path for image in plant.images]

    try:
        db.delete(plant)
        log_change(db, current_user, "plant", plant_id, plant_id, "DELETE", before, None)
        db.commit()
    except Exception:
        db.rollback()
        raise

    try:
        storage.remove(bucket, paths)
    except Exception:
        logger.exception("Could not remove %s image objects of plant %s", len(paths), plant_id)

    return None


@router.get("/plants/{plant_id}/history", response_model=List[AuditEntryResponse])
def get_plant_history(
    plant_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Audit entries for the plant and its images, newest first."""
    get_managed_plant(db, plant_id, current_user)
    entries = (
        db.query(AuditLog)
        .options(joinedload(AuditLog.user))
        .filter(AuditLog.plant_id == plant_id)
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": entry.id,
            "timestamp": entry.timestamp,
            "user_id": entry.user_id,
            "user_email": entry.user.email if entry.user else None,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "action": entry.action,
            "diff_json": entry.diff_json,
        }
        for entry in entries
    ]
