"""Sighting endpoints: field observations logged by users."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from plantcards.auth import get_current_user, get_optional_user
from plantcards.database import get_db, utcnow
from plantcards.models import Sighting, User
from plantcards.schemas import SightingCountsResponse, SightingCreate, SightingResponse, SightingUpdate
from plantcards.services.catalog import get_accessible_plant, global_sighting_counts

router = APIRouter(prefix="/sightings", tags=["sightings"])


def _own_sighting(db: Session, sighting_id: int, user: User) -> Sighting:
    sighting = db.query(Sighting).filter(Sighting.id == sighting_id).first()
    if not sighting:
        raise HTTPException(status_code=404, detail="Sighting not found")
    if sighting.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not allowed to modify this sighting")
    return sighting


@router.get("/counts", response_model=SightingCountsResponse)
def sighting_counts(
    plant_id: Optional[List[int]] = Query(None),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Global sightings per plant."""
    return {"counts": global_sighting_counts(db, user, plant_id)}


@router.get("", response_model=List[SightingResponse])
def list_sightings(
    plant_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Sighting).filter(Sighting.user_id == current_user.id)
    if plant_id is not None:
        query = query.filter(Sighting.plant_id == plant_id)
    return query.order_by(Sighting.observed_at.desc(), Sighting.id.desc()).all()


@router.post("", response_model=SightingResponse, status_code=201)
def create_sighting(
    data: SightingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_accessible_plant(db, data.plant_id, current_user)

    sighting = Sighting(
        user_id=current_user.id,
        plant_id=data.plant_id,
        observed_at=data.observed_at or utcnow(),
        location=data.location,
        notes=data.notes,
        is_testable=data.is_testable,
    )
    try:
        db.add(sighting)
        db.commit()
        db.refresh(sighting)
    except Exception:
        db.rollback()
        raise
    return sighting


@router.patch("/{sighting_id}", response_model=SightingResponse)
def update_sighting(
    sighting_id: int,
    data: SightingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sighting = _own_sighting(db, sighting_id, current_user)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("observed_at", "is_testable") and value is None:
            continue
        setattr(sighting, key, value)
    try:
        db.commit()
        db.refresh(sighting)
    except Exception:
        db.rollback()
        raise
    return sighting


@router.delete("/{sighting_id}", status_code=204)
def delete_sighting(
    sighting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sighting = _own_sighting(db, sighting_id, current_user)
    try:
        db.delete(sighting)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return None
