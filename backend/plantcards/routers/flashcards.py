"""Flashcard study endpoints: decks, views, answers, session results and practice."""
from typing import List, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from plantcards.auth import get_current_user, get_optional_user
from plantcards.database import get_db, utcnow
from plantcards.models import FlashcardAnswer, Plant, StudySession, User
from plantcards.schemas import (
    AnswerCreate,
    AnswerResponse,
    DeckResponse,
    PracticePlant,
    SessionSummaryResponse,
    ViewResponse,
)
from plantcards.services.catalog import (
    build_context,
    get_filters,
    image_url,
    practice_plant_rows,
    require_user_for,
    visible_plants_query,
)
from plantcards.services.filters import PlantFilters, apply_filters, serialize_filters_to_query
from plantcards.services.plant_names import plant_display_name, render_plant_name
from plantcards.services.study import pick_image, session_summary, shuffled
from plantcards.storage import ImageStorage, get_storage

router = APIRouter(prefix="/flashcards", tags=["flashcards"])
practice_router = APIRouter(prefix="/practice", tags=["flashcards"])


def flashcard(plant: Plant, storage: ImageStorage) -> dict:
    image = pick_image(plant)
    return {
        "plant_id": plant.id,
        "slug": plant.slug,
        "scientific_name": plant.scientific_name,
        "common_name": plant.common_name,
        "family": plant.family,
        "name_html": render_plant_name(plant),
        "display_name": plant_display_name(plant),
        "description": plant.description,
        "image_url": image_url(storage, plant, image) if image else plant.image_url,
    }


def _session_answers(db: Session, user: User, session_id: UUID) -> List[FlashcardAnswer]:
    return (
        db.query(FlashcardAnswer)
        .filter(FlashcardAnswer.user_id == user.id, FlashcardAnswer.session_id == session_id)
        .order_by(FlashcardAnswer.answered_at, FlashcardAnswer.id)
        .all()
    )


@router.get("/deck", response_model=DeckResponse)
def get_deck(
    filters: PlantFilters = Depends(get_filters),
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    """A fresh session over the filtered plants in random order."""
    require_user_for(filters, user)
    context = build_context(db, user, use_practice_query=filters.need_practice)
    plants = shuffled(apply_filters(visible_plants_query(db, user).all(), filters, context))
    cards = [flashcard(plant, storage) for plant in plants]
    return {
        "session_id": uuid4(),
        "cards": cards,
        "count": len(cards),
        "query": serialize_filters_to_query(filters),
    }


@router.post("/answers", response_model=AnswerResponse, status_code=201)
def record_answer(
    data: AnswerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not db.query(Plant.id).filter(Plant.id == data.plant_id).first():
        raise HTTPException(status_code=404, detail="Plant not found")

    duplicate = (
        db.query(FlashcardAnswer.id)
        .filter(
            FlashcardAnswer.user_id == current_user.id,
            FlashcardAnswer.session_id == data.session_id,
            FlashcardAnswer.plant_id == data.plant_id,
        )
        .first()
    )
    if duplicate:
        raise HTTPException(status_code=409, detail="This card was already answered in this session")

    answer = FlashcardAnswer(
        user_id=current_user.id,
        plant_id=data.plant_id,
        session_id=data.session_id,
        is_correct=data.is_correct,
    )
    try:
        db.add(answer)
        db.commit()
        db.refresh(answer)
    except Exception:
        db.rollback()
        raise
    return answer


@router.post("/{plant_id}/view", response_model=ViewResponse)
def record_view(
    plant_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Count a card flip for the signed-in user."""
    if not db.query(Plant.id).filter(Plant.id == plant_id).first():
        raise HTTPException(status_code=404, detail="Plant not found")

    entry = (
        db.query(StudySession)
        .filter(StudySession.user_id == current_user.id, StudySession.plant_id == plant_id)
        .first()
    )
    try:
        if entry:
            entry.count += 1
            entry.last_studied_at = utcnow()
        else:
            entry = StudySession(user_id=current_user.id, plant_id=plant_id, count=1)
            db.add(entry)
        db.commit()
        db.refresh(entry)
    except Exception:
        db.rollback()
        raise
    return {"plant_id": plant_id, "count": entry.count}


@router.get("/sessions/{session_id}", response_model=SessionSummaryResponse)
def get_session_summary(
    session_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    summary = session_summary(_session_answers(db, current_user, session_id))
    return {"session_id": session_id, **summary}


@router.get("/sessions/{session_id}/retry", response_model=DeckResponse)
def retry_session(
    session_id: UUID,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """A new session over the cards answered wrong in ``session_id``."""
    incorrect = set(session_summary(_session_answers(db, current_user, session_id))["incorrect_plant_ids"])
    plants = [p for p in visible_plants_query(db, current_user).all() if p.id in incorrect]
    cards = [flashcard(plant, storage) for plant in shuffled(plants)]
    return {"session_id": uuid4(), "cards": cards, "count": len(cards), "query": ""}


@practice_router.get("", response_model=List[PracticePlant])
def list_practice_plants(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Recently answered plants with a low success rate, weakest first."""
    rows = practice_plant_rows(db, current_user)
    plants = {p.id: p for p in visible_plants_query(db, current_user).all()}
    return [
        {**row, "slug": plants[row["plant_id"]].slug, "display_name": plant_display_name(plants[row["plant_id"]])}
        for row in rows
        if row["plant_id"] in plants
    ]
