"""Quiz endpoints: overview counts, multiple-choice rounds and answer checking."""
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from plantcards.auth import get_optional_user
from plantcards.config import get_settings
from plantcards.database import get_db
from plantcards.models import FlashcardAnswer, Plant, User
from plantcards.schemas import QuizAnswerCreate, QuizAnswerResponse, QuizOverviewResponse, QuizResponse
from plantcards.services.catalog import (
    build_context,
    get_filters,
    image_url,
    require_user_for,
    visible_collections_query,
    visible_plants_query,
)
from plantcards.services.filters import PlantFilters, apply_filters, serialize_filters_to_query
from plantcards.services.plant_names import plant_display_name, render_plant_name
from plantcards.services.study import build_quiz, pick_image
from plantcards.storage import ImageStorage, get_storage

router = APIRouter(prefix="/quiz", tags=["quiz"])


def _filtered_plants(db: Session, user: Optional[User], filters: PlantFilters):
    require_user_for(filters, user)
    context = build_context(db, user)
    return apply_filters(visible_plants_query(db, user).all(), filters, context), context


@router.get("", response_model=QuizOverviewResponse)
def quiz_overview(
    filters: PlantFilters = Depends(get_filters),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """How many plants the current filters select, in total and per collection."""
    plants, context = _filtered_plants(db, user, filters)
    ids = {plant.id for plant in plants}
    collections = [
        {"id": c.id, "name": c.name, "count": sum(1 for link in c.plant_links if link.plant_id in ids)}
        for c in visible_collections_query(db, user).all()
    ]
    return {
        "total": len(plants),
        "favorites": len(ids & context.favorites) if context.favorites is not None else None,
        "collections": collections,
        "query": serialize_filters_to_query(filters),
    }


@router.post("/multiple-choice", response_model=QuizResponse)
def start_multiple_choice(
    filters: PlantFilters = Depends(get_filters),
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    user: Optional[User] = Depends(get_optional_user),
):
    """Random questions from the filtered plants, each with shuffled name options."""
    settings = get_settings()
    plants, _ = _filtered_plants(db, user, filters)
    questions = []
    for plant, options in build_quiz(plants, settings.quiz_question_count, settings.quiz_option_count):
        image = pick_image(plant)
        questions.append({
            "plant_id": plant.id,
            "image_url": image_url(storage, plant, image) if image else plant.image_url,
            "options": [
                {"plant_id": o.id, "display_name": plant_display_name(o), "name_html": render_plant_name(o)}
                for o in options
            ],
        })
    return {"session_id": uuid4(), "questions": questions}


@router.post("/answers", response_model=QuizAnswerResponse)
def answer_question(
    data: QuizAnswerCreate,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Check an answer; signed-in answers count towards study statistics."""
    if not db.query(Plant.id).filter(Plant.id == data.plant_id).first():
        raise HTTPException(status_code=404, detail="Plant not found")

    is_correct = data.selected_plant_id == data.plant_id
    recorded = False
    if user is not None:
        duplicate = (
            db.query(FlashcardAnswer.id)
            .filter(
                FlashcardAnswer.user_id == user.id,
                FlashcardAnswer.session_id == data.session_id,
                FlashcardAnswer.plant_id == data.plant_id,
            )
            .first()
        )
        if duplicate:
            raise HTTPException(status_code=409, detail="This question was already answered in this session")
        try:
            db.add(FlashcardAnswer(
                user_id=user.id, plant_id=data.plant_id, session_id=data.session_id, is_correct=is_correct
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        recorded = True

    return {"is_correct": is_correct, "correct_plant_id": data.plant_id, "recorded": recorded}
