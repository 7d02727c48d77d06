"""
Image conversion and the bulk upload pipeline.

Every accepted file is converted to WebP, stored under
``{plant_id}/{name}-{suffix}.webp`` and recorded in ``plant_images``.
Files are handled one after another; a failing file is marked ``error`` and
the batch carries on with the next one.
"""
import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener
from sqlalchemy.orm import Session

from plantcards.audit import entity_to_dict, log_change
from plantcards.models import Plant, PlantImage, User
from plantcards.services.plant_names import build_image_filename, generate_suffix
from plantcards.storage import ImageStorage, bucket_for

register_heif_opener()

logger = logging.getLogger("plantcards.images")

HEIF_EXTENSIONS = (".heic", ".heif")
WEBP_CONTENT_TYPE = "image/webp"

PENDING = "pending"
PROCESSING = "processing"
UPLOADING = "uploading"
COMPLETED = "completed"
ERROR = "error"


class ImageConversionError(Exception):
    pass


@dataclass
class UploadFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadItem:
    name: str
    size: int
    content_type: str
    status: str = PENDING
    progress: int = 0
    error: Optional[str] = None
    image_id: Optional[int] = None
    path: Optional[str] = None
    is_primary: bool = False

    def update(self, status: str, progress: int = 0, error: Optional[str] = None) -> None:
        self.status = status
        self.progress = progress
        self.error = error


@dataclass
class BatchResult:
    items: List[UploadItem] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for item in self.items if item.status == COMPLETED)


def is_image_upload(filename: str, content_type: Optional[str]) -> bool:
    if content_type and content_type.startswith("image/"):
        return True
    return (filename or "").lower().endswith(HEIF_EXTENSIONS)


def convert_to_webp(data: bytes, quality: int = 80) -> bytes:
    """Re-encode any Pillow-readable image (HEIC/HEIF included) as WebP."""
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
            out = io.BytesIO()
            image.save(out, format="WEBP", quality=quality)
            return out.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageConversionError(str(exc) or exc.__class__.__name__) from exc


def storage_path(plant: Plant) -> tuple[str, str]:
    base = build_image_filename(plant) or "plant"
    filename = f"{base}-{generate_suffix()}.webp"
    return filename, f"{plant.id}/{filename}"


def _fail(item: UploadItem, stage: str, exc: Exception) -> None:
    logger.error(
        "[Bulk Image Upload] %s failed for %s (%s bytes, %s): %s",
        stage, item.name, item.size, item.content_type, exc,
    )
    item.update(ERROR, 0, f"{stage} failed: {exc}")


def upload_images(
    db: Session,
    storage: ImageStorage,
    plant: Plant,
    files: List[UploadFile],
    user: Optional[User] = None,
    quality: int = 80,
) -> BatchResult:
    """Convert, store and record files sequentially, tracking status per file.

    The first image stored becomes primary only when the plant had none.
    """
    result = BatchResult()
    for upload in files:
        if is_image_upload(upload.name, upload.content_type):
            result.items.append(UploadItem(upload.name, upload.size, upload.content_type or ""))
        else:
            result.skipped.append(upload.name)
    accepted = [f for f in files if is_image_upload(f.name, f.content_type)]

    bucket = bucket_for(plant)
    has_images = db.query(PlantImage.id).filter(PlantImage.plant_id == plant.id).first() is not None

    for upload, item in zip(accepted, result.items):
        item.update(PROCESSING, 10)
        try:
            webp = convert_to_webp(upload.data, quality)
        except ImageConversionError as exc:
            _fail(item, "Conversion", exc)
            continue
        item.update(PROCESSING, 40)

        filename, path = storage_path(plant)
        item.update(UPLOADING, 50)
        try:
            storage.upload(bucket, path, webp, WEBP_CONTENT_TYPE)
        except Exception as exc:
            _fail(item, "Storage upload", exc)
            continue
        item.update(UPLOADING, 80)

        image = PlantImage(
            plant_id=plant.id,
            filename=filename,
            path=path,
            file_size=len(webp),
            content_type=WEBP_CONTENT_TYPE,
            is_primary=not has_images,
        )
        try:
            db.add(image)
            db.flush()
            log_change(db, user, "plant_image", image.id, plant.id, "CREATE", None, entity_to_dict(image))
            db.commit()
        except Exception as exc:
            db.rollback()
            _fail(item, "DB insert", exc)
            try:
                storage.remove(bucket, [path])
            except Exception:
                logger.exception("Could not remove orphaned object %s/%s", bucket, path)
            continue

        has_images = True
        item.image_id = image.id
        item.path = path
        item.is_primary = image.is_primary
        item.update(COMPLETED, 100)
        logger.info("Stored %s as %s/%s", item.name, bucket, path)

    return result


def set_primary_image(db: Session, plant: Plant, image: PlantImage) -> None:
    """Clear the primary flag on every image of the plant, then set it on ``image``."""
    db.query(PlantImage).filter(PlantImage.plant_id == plant.id).update(
        {PlantImage.is_primary: False}, synchronize_session=False
    )
    # explicit UPDATE: the loaded row may already read True
    db.query(PlantImage).filter(PlantImage.id == image.id).update(
        {PlantImage.is_primary: True}, synchronize_session=False
    )
    db.flush()
    db.expire(image, ["is_primary"])


def delete_image(db: Session, storage: ImageStorage, plant: Plant, image: PlantImage,
                 user: Optional[User] = None) -> None:
    """Remove the stored object first, then the row."""
    storage.remove(bucket_for(plant), [image.path])
    before = entity_to_dict(image)
    db.delete(image)
    log_change(db, user, "plant_image", before["id"], plant.id, "DELETE", before, None)
    db.commit()
