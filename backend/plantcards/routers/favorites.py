"""Favorite plant endpoints for the signed-in user."""
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plantcards.auth import get_current_user
from plantcards.database import get_db
from plantcards.models import Favorite, User
from plantcards.schemas import FavoriteListResponse, FavoriteStateResponse
from plantcards.services.catalog import favorite_ids, get_accessible_plant

router = APIRouter(prefix="/favorites", tags=["favorites"])


def _find(db: Session, user: User, plant_id: int):
    return db.query(Favorite).filter(Favorite.user_id == user.id, Favorite.plant_id == plant_id).first()


def _add(db: Session, user: User, plant_id: int) -> None:
    try:
        db.add(Favorite(user_id=user.id, plant_id=plant_id))
        db.commit()
    except IntegrityError:
        # added concurrently; the end state is the same
        db.rollback()
    except Exception:
        db.rollback()
        raise


def _remove(db: Session, favorite: Favorite) -> None:
    try:
        db.delete(favorite)
        db.commit()
    except Exception:
        db.rollback()
        raise


@router.get("", response_model=FavoriteListResponse)
def list_favorites(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"plant_ids": sorted(favorite_ids(db, current_user))}


@router.post("/{plant_id}", response_model=FavoriteStateResponse)
def add_favorite(plant_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    get_accessible_plant(db, plant_id, current_user)
    if not _find(db, current_user, plant_id):
        _add(db, current_user, plant_id)
    return {"plant_id": plant_id, "is_favorite": True}


@router.delete("/{plant_id}", status_code=204)
def remove_favorite(plant_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    favorite = _find(db, current_user, plant_id)
    if favorite:
        _remove(db, favorite)
    return None


@router.post("/{plant_id}/toggle", response_model=FavoriteStateResponse)
def toggle_favorite(plant_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    get_accessible_plant(db, plant_id, current_user)
    favorite = _find(db, current_user, plant_id)
    if favorite:
        _remove(db, favorite)
        return {"plant_id": plant_id, "is_favorite": False}
    _add(db, current_user, plant_id)
    return {"plant_id": plant_id, "is_favorite": True}
