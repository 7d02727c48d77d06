"""Plant image endpoints: listing, bulk upload, primary selection and deletion."""
from dataclasses import asdict
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from plantcards.auth import can_manage, get_current_user, get_optional_user
from plantcards.config import get_settings
from plantcards.database import get_db
from plantcards.models import Plant, PlantImage, User
from plantcards.routers.dashboard import get_managed_plant
from plantcards.schemas import BulkUploadResponse, ImageCountResponse, PlantImageResponse
from plantcards.services import images as image_service
from plantcards.services.catalog import image_payload, plant_is_visible
from plantcards.storage import ImageStorage, StorageError, get_storage

router = APIRouter(prefix="/plants/{plant_id}/images", tags=["images"])


def _readable_plant(db: Session, plant_id: int, user: Optional[User]) -> Plant:
    plant = db.query(Plant).filter(Plant.id == plant_id).first()
    if not plant or not (plant_is_visible(plant, user) or (user and can_manage(user, plant.user_id))):
        raise HTTPException(status_code=404, detail="Plant not found")
    return plant


def _plant_image(db: Session, plant: Plant, image_id: int) -> PlantImage:
    image = (
        db.query(PlantImage)
        .filter(PlantImage.id == image_id, PlantImage.plant_id == plant.id)
        .first()
    )
    if not image:
        raise HTTPException(status_code=404, detail="Image not found")
    return image


@router.get("", response_model=List[PlantImageResponse])
def list_images(
    plant_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    """Images of a plant, primary first."""
    plant = _readable_plant(db, plant_id, user)
    return [image_payload(storage, plant, image) for image in plant.images]


@router.get("/count", response_model=ImageCountResponse)
def count_images(
    plant_id: int,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    _readable_plant(db, plant_id, user)
    count = db.query(PlantImage).filter(PlantImage.plant_id == plant_id).count()
    return {"plant_id": plant_id, "count": count}


@router.post("", response_model=BulkUploadResponse)
def upload_images(
    plant_id: int,
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """Bulk upload. Per-file failures are reported in the result, not raised."""
    plant = get_managed_plant(db, plant_id, current_user)
    uploads = [
        image_service.UploadFile(
            name=upload.filename or "upload",
            content_type=upload.content_type or "",
            data=upload.file.read(),
        )
        for upload in files
    ]
    result = image_service.upload_images(
        db, storage, plant, uploads, user=current_user, quality=get_settings().webp_quality
    )
    return {"items": [asdict(item) for item in result.items], "completed": result.completed, "skipped": result.skipped}


@router.post("/{image_id}/primary", response_model=PlantImageResponse)
def set_primary(
    plant_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    plant = get_managed_plant(db, plant_id, current_user)
    image = _plant_image(db, plant, image_id)
    try:
        image_service.set_primary_image(db, plant, image)
        db.commit()
        db.refresh(image)
    except Exception:
        db.rollback()
        raise
    return image_payload(storage, plant, image)


@router.delete("/{image_id}", status_code=204)
def delete_image(
    plant_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    plant = get_managed_plant(db, plant_id, current_user)
    image = _plant_image(db, plant, image_id)
    try:
        image_service.delete_image(db, storage, plant, image, user=current_user)
    except (BotoCoreError, ClientError, StorageError) as exc:
        db.rollback()
        raise HTTPException(status_code=502, detail=f"Could not delete image: {exc}")
    except Exception:
        db.rollback()
        raise
    return None
