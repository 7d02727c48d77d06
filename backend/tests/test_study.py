"""Tests for study statistics, practice selection and quiz assembly."""
import random
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from plantcards.services.study import (
    answer_stats,
    build_quiz,
    classify_mastery,
    plants_needing_practice,
    session_summary,
    shuffled,
)

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def answer(plant_id, is_correct, days_ago=0):
    return SimpleNamespace(plant_id=plant_id, is_correct=is_correct, answered_at=NOW - timedelta(days=days_ago))


def plant(plant_id):
    return SimpleNamespace(id=plant_id, images=[])


def test_answer_stats_groups_by_plant():
    stats = answer_stats([answer(1, True), answer(1, False), answer(2, True)])
    assert stats == {1: {"correct": 1, "total": 2}, 2: {"correct": 1, "total": 1}}


def test_mastery_needs_three_attempts_at_eighty_percent():
    plants = [plant(1), plant(2), plant(3), plant(4)]
    answers = (
        [answer(1, True)] * 3                      # mastered
        + [answer(2, True), answer(2, True)]       # good but too few attempts
        + [answer(3, True), answer(3, False)]      # 50 %
    )
    mastered, need_practice = classify_mastery(plants, answer_stats(answers))
    assert [p.id for p in mastered] == [1]
    assert [p.id for p in need_practice] == [3, 4]


def test_practice_selection_window_threshold_and_order():
    answers = (
        [answer(1, False)] * 3                                   # 0 %
        + [answer(2, True), answer(2, False), answer(2, False)]  # 33 %
        + [answer(3, True)] * 3                                  # 100 %
        + [answer(4, False), answer(4, False)]                   # too few
        + [answer(5, False, days_ago=40)] * 3                    # outside window
    )
    rows = plants_needing_practice(answers, now=NOW)
    assert [row["plant_id"] for row in rows] == [1, 2]
    assert rows[1] == {"plant_id": 2, "total_attempts": 3, "correct_attempts": 1, "success_rate": 33.33}


def test_practice_threshold_is_exclusive():
    answers = [answer(1, True)] * 7 + [answer(1, False)] * 3
    assert plants_needing_practice(answers, now=NOW) == []


def test_shuffled_keeps_items_and_input():
    items = list(range(20))
    result = shuffled(items, random.Random(7))
    assert sorted(result) == items
    assert items == list(range(20))


def test_quiz_limits_questions_and_options():
    plants = [plant(i) for i in range(1, 16)]
    quiz = build_quiz(plants, question_count=10, option_count=4, rng=random.Random(3))
    assert len(quiz) == 10
    assert len({q.id for q, _ in quiz}) == 10
    for question, options in quiz:
        assert len(options) == 4
        assert question in options
        assert len({o.id for o in options}) == 4


def test_quiz_with_small_pool():
    plants = [plant(1), plant(2)]
    quiz = build_quiz(plants, rng=random.Random(1))
    assert len(quiz) == 2
    assert all(len(options) == 2 for _, options in quiz)


def test_session_summary():
    summary = session_summary([answer(1, True), answer(2, False), answer(3, True)])
    assert summary == {
        "answered": 3, "correct": 2, "incorrect": 1, "accuracy": 67, "incorrect_plant_ids": [2],
    }
    assert session_summary([])["accuracy"] == 0
