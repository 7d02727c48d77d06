"""Study statistics, practice selection and quiz assembly."""
import random
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from plantcards.database import as_utc, utcnow
from plantcards.services.filters import NEED_PRACTICE_RATIO

MASTERY_MIN_ATTEMPTS = 3


def answer_stats(answers: Iterable[Any]) -> Dict[int, Dict[str, int]]:
    """Group answers by plant into ``{plant_id: {"correct": n, "total": n}}``."""
    stats: Dict[int, Dict[str, int]] = {}
    for answer in answers:
        entry = stats.setdefault(answer.plant_id, {"correct": 0, "total": 0})
        entry["total"] += 1
        if answer.is_correct:
            entry["correct"] += 1
    return stats


def classify_mastery(plants: Sequence[Any], stats: Dict[int, Dict[str, int]]) -> Tuple[list, list]:
    """Split plants into (mastered, need_practice).

    Mastered needs at least three attempts at 80 % or better. Plants with
    fewer attempts but a good ratio land in neither list.
    """
    mastered, need_practice = [], []
    for plant in plants:
        entry = stats.get(plant.id, {"correct": 0, "total": 0})
        ratio = entry["correct"] / entry["total"] if entry["total"] else 0.0
        if entry["total"] >= MASTERY_MIN_ATTEMPTS and ratio >= NEED_PRACTICE_RATIO:
            mastered.append(plant)
        elif entry["total"] == 0 or ratio < NEED_PRACTICE_RATIO:
            need_practice.append(plant)
    return mastered, need_practice


def plants_needing_practice(
    answers: Iterable[Any],
    min_attempts: int = 3,
    success_threshold: float = 70.0,
    days_ago: int = 30,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Plants answered recently and often enough whose success rate (percent) is below the threshold.

    Ordered weakest first; ties keep the plant with more attempts first.
    """
    cutoff = (now or utcnow()) - timedelta(days=days_ago)
    recent = [a for a in answers if as_utc(a.answered_at) >= cutoff]
    rows = []
    for plant_id, entry in answer_stats(recent).items():
        if entry["total"] < min_attempts:
            continue
        rate = round(entry["correct"] * 100.0 / entry["total"], 2)
        if rate < success_threshold:
            rows.append({
                "plant_id": plant_id,
                "total_attempts": entry["total"],
                "correct_attempts": entry["correct"],
                "success_rate": rate,
            })
    rows.sort(key=lambda row: (row["success_rate"], -row["total_attempts"], row["plant_id"]))
    return rows


def shuffled(items: Sequence[Any], rng: Optional[random.Random] = None) -> list:
    """Shuffled copy of ``items``."""
    result = list(items)
    (rng or random).shuffle(result)
    return result


def pick_image(plant: Any, rng: Optional[random.Random] = None):
    """A random image of the plant, or None."""
    images = list(plant.images or [])
    if not images:
        return None
    return (rng or random).choice(images)


def build_quiz(
    plants: Sequence[Any],
    question_count: int = 10,
    option_count: int = 4,
    rng: Optional[random.Random] = None,
) -> List[Tuple[Any, list]]:
    """Pick up to ``question_count`` plants and give each shuffled answer options.

    Distractors come from the whole pool, not only from the chosen questions.
    """
    rng = rng or random
    questions = shuffled(plants, rng)[:min(question_count, len(plants))]
    quiz = []
    for plant in questions:
        others = [p for p in plants if p.id != plant.id]
        wrong = shuffled(others, rng)[:option_count - 1]
        quiz.append((plant, shuffled(wrong + [plant], rng)))
    return quiz


def session_summary(answers: Sequence[Any]) -> Dict[str, Any]:
    correct = sum(1 for a in answers if a.is_correct)
    answered = len(answers)
    return {
        "answered": answered,
        "correct": correct,
        "incorrect": answered - correct,
        "accuracy": round(correct * 100.0 / answered) if answered else 0,
        "incorrect_plant_ids": [a.plant_id for a in answers if not a.is_correct],
    }
