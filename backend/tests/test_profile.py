"""Tests for account settings and profile statistics."""
from datetime import timedelta

from plantcards.database import utcnow
from plantcards.models import FlashcardAnswer, User

from conftest import auth_headers, make_plant


def test_settings_defaults(client, user_headers):
    resp = client.get("/settings", headers=user_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["email"] == "gardener@example.com"
    assert body["show_admin_plants"] is True
    assert body["show_admin_collections"] is True
    assert body["show_admin_sightings"] is True


def test_settings_update(client, user_headers):
    resp = client.put("/settings", json={
        "display_name": "  Ivy  ", "website": "https://ivy.example", "show_admin_plants": False,
    }, headers=user_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["display_name"] == "Ivy"
    assert body["website"] == "https://ivy.example"
    assert body["show_admin_plants"] is False

    # untouched fields keep their values
    body = client.put("/settings", json={"bio": "Hedges mostly"}, headers=user_headers).json()
    assert body["display_name"] == "Ivy"
    assert body["show_admin_plants"] is False
    assert client.get("/settings", headers=user_headers).json()["bio"] == "Hedges mostly"


def test_settings_clear_text_field(client, user_headers):
    client.put("/settings", json={"location": "Kew"}, headers=user_headers)
    body = client.put("/settings", json={"location": "   "}, headers=user_headers).json()
    assert body["location"] is None


def test_settings_rejects_bad_website(client, user_headers):
    assert client.put("/settings", json={"website": "ftp://files.example"}, headers=user_headers).status_code == 422


def test_settings_created_for_user_without_profile(client, db_session):
    bare = User(email="bare@example.com")
    db_session.add(bare)
    db_session.commit()
    resp = client.get("/settings", headers=auth_headers(bare))
    assert resp.status_code == 200
    assert resp.json()["show_admin_sightings"] is True


def test_settings_require_sign_in(client):
    assert client.get("/settings").status_code == 401
    assert client.get("/profile/stats").status_code == 401


def test_profile_stats(client, db_session, user, user_headers):
    oak = make_plant(db_session, "Quercus robur")
    maple = make_plant(db_session, "Acer campestre")
    make_plant(db_session, "Taxus baccata")
    start = utcnow() - timedelta(hours=1)
    db_session.add_all([
        FlashcardAnswer(user_id=user.id, plant_id=oak.id, is_correct=True, answered_at=start + timedelta(minutes=i))
        for i in range(3)
    ])
    db_session.add(FlashcardAnswer(user_id=user.id, plant_id=maple.id, is_correct=False,
                                   answered_at=start + timedelta(minutes=10)))
    db_session.commit()

    stats = client.get("/profile/stats", headers=user_headers).json()
    assert stats["total_plants"] == 3
    assert stats["mastered_count"] == 1
    assert [p["slug"] for p in stats["mastered"]] == ["quercus-robur"]
    # unanswered plants need practice too
    assert sorted(p["slug"] for p in stats["need_practice"]) == ["acer-campestre", "taxus-baccata"]
    assert stats["total_attempts"] == 4
    assert stats["correct_attempts"] == 3
    assert stats["incorrect_attempts"] == 1

    recent = stats["recent_answers"]
    assert len(recent) == 4
    assert recent[0]["plant_name"] == "Acer campestre"
    assert recent[0]["is_correct"] is False


def test_recent_answers_are_capped(client, db_session, user, user_headers):
    oak = make_plant(db_session, "Quercus robur")
    db_session.add_all([FlashcardAnswer(user_id=user.id, plant_id=oak.id, is_correct=True) for _ in range(12)])
    db_session.commit()
    assert len(client.get("/profile/stats", headers=user_headers).json()["recent_answers"]) == 10
