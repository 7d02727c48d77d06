"""Account settings and study statistics for the signed-in user."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from plantcards.auth import ensure_profile, get_current_user
from plantcards.database import get_db, utcnow
from plantcards.models import FlashcardAnswer, User
from plantcards.schemas import ProfileStatsResponse, SettingsResponse, SettingsUpdate
from plantcards.services.catalog import user_answers, visible_plants_query
from plantcards.services.plant_names import plant_display_name
from plantcards.services.study import answer_stats, classify_mastery

router = APIRouter(prefix="/profile", tags=["profile"])
settings_router = APIRouter(prefix="/settings", tags=["profile"])

RECENT_ANSWERS = 10


def _settings_payload(user: User) -> dict:
    profile = user.profile
    return {
        "display_name": profile.display_name,
        "email": user.email,
        "bio": profile.bio,
        "location": profile.location,
        "website": profile.website,
        "show_admin_plants": profile.show_admin_plants,
        "show_admin_collections": profile.show_admin_collections,
        "show_admin_sightings": profile.show_admin_sightings,
    }


def _summary(plant) -> dict:
    return {
        "id": plant.id,
        "slug": plant.slug,
        "scientific_name": plant.scientific_name,
        "display_name": plant_display_name(plant),
    }


@settings_router.get("", response_model=SettingsResponse)
def get_user_settings(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.profile is None:
        ensure_profile(db, current_user)
        db.commit()
    return _settings_payload(current_user)


@settings_router.put("", response_model=SettingsResponse)
def update_user_settings(
    data: SettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = ensure_profile(db, current_user)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key.startswith("show_admin_"):
            if value is not None:
                setattr(profile, key, value)
        else:
            setattr(profile, key, (value.strip() or None) if isinstance(value, str) else value)
    profile.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(profile)
    except Exception:
        db.rollback()
        raise
    return _settings_payload(current_user)


@router.get("/stats", response_model=ProfileStatsResponse)
def get_profile_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Mastery and attempt totals over the plants the user can currently see."""
    plants = visible_plants_query(db, current_user).all()
    answers = user_answers(db, current_user)
    mastered, need_practice = classify_mastery(plants, answer_stats(answers))
    correct = sum(1 for answer in answers if answer.is_correct)

    recent = (
        db.query(FlashcardAnswer)
        .options(joinedload(FlashcardAnswer.plant))
        .filter(FlashcardAnswer.user_id == current_user.id)
        .order_by(FlashcardAnswer.answered_at.desc(), FlashcardAnswer.id.desc())
        .limit(RECENT_ANSWERS)
        .all()
    )

    return {
        "total_plants": len(plants),
        "mastered_count": len(mastered),
        "need_practice_count": len(need_practice),
        "total_attempts": len(answers),
        "correct_attempts": correct,
        "incorrect_attempts": len(answers) - correct,
        "mastered": [_summary(p) for p in mastered],
        "need_practice": [_summary(p) for p in need_practice],
        "recent_answers": [
            {
                "plant_id": answer.plant_id,
                "plant_name": plant_display_name(answer.plant),
                "is_correct": answer.is_correct,
                "answered_at": answer.answered_at,
            }
            for answer in recent
        ],
    }
