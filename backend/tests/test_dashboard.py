"""Tests for plant administration: CRUD, ownership and audit history."""
from plantcards.models import AuditLog, Favorite, Plant, PlantImage

from conftest import make_plant


def test_dashboard_requires_sign_in(client):
    assert client.get("/dashboard/plants").status_code == 401


def test_admin_creates_admin_plant_with_slug(client, db_session, admin, admin_headers):
    resp = client.post("/dashboard/plants", json={
        "scientific_name": "  Acer palmatum  ", "genus": "Acer", "specific_epithet": "palmatum",
    }, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["slug"] == "acer-palmatum"
    assert body["scientific_name"] == "Acer palmatum"
    assert body["is_admin_plant"] is True
    assert body["user_id"] == str(admin.id)

    entry = db_session.query(AuditLog).filter(AuditLog.plant_id == body["id"]).one()
    assert entry.action == "CREATE"
    assert entry.entity_type == "plant"


def test_user_plant_is_not_admin_plant(client, user_headers):
    body = client.post("/dashboard/plants", json={"scientific_name": "Rosa canina"}, headers=user_headers).json()
    assert body["is_admin_plant"] is False


def test_generated_slug_is_made_unique(client, admin_headers):
    first = client.post("/dashboard/plants", json={"scientific_name": "Rosa canina"}, headers=admin_headers)
    second = client.post("/dashboard/plants", json={"scientific_name": "Rosa canina"}, headers=admin_headers)
    assert first.json()["slug"] == "rosa-canina"
    assert second.json()["slug"] == "rosa-canina-2"


def test_explicit_duplicate_slug_conflicts(client, db_session, admin_headers):
    make_plant(db_session, "Rosa canina")
    resp = client.post("/dashboard/plants", json={"scientific_name": "Rosa", "slug": "rosa-canina"},
                       headers=admin_headers)
    assert resp.status_code == 409


def test_create_validation(client, admin_headers):
    assert client.post("/dashboard/plants", json={"scientific_name": "   "}, headers=admin_headers).status_code == 400
    resp = client.post("/dashboard/plants", json={"scientific_name": "Mentha", "hybrid_marker": "y"},
                       headers=admin_headers)
    assert resp.status_code == 422


def test_list_shows_own_plants_for_users_and_all_for_admins(client, db_session, user, other_user,
                                                            user_headers, admin_headers):
    make_plant(db_session, "Rosa canina", owner=user, is_admin_plant=False, is_published=False)
    make_plant(db_session, "Salix alba", owner=other_user, is_admin_plant=False)
    make_plant(db_session, "Quercus robur")

    mine = client.get("/dashboard/plants", headers=user_headers).json()
    assert [p["scientific_name"] for p in mine] == ["Rosa canina"]
    everything = client.get("/dashboard/plants", headers=admin_headers).json()
    assert [p["scientific_name"] for p in everything] == ["Quercus robur", "Rosa canina", "Salix alba"]


def test_list_favorites_only(client, db_session, admin, admin_headers):
    oak = make_plant(db_session, "Quercus robur")
    make_plant(db_session, "Acer campestre")
    db_session.add(Favorite(user_id=admin.id, plant_id=oak.id))
    db_session.commit()

    resp = client.get("/dashboard/plants?favorites_only=true", headers=admin_headers).json()
    assert [p["id"] for p in resp] == [oak.id]


def test_update_keeps_slug_unless_given(client, db_session, user, user_headers):
    plant = make_plant(db_session, "Rosa canina", owner=user, is_admin_plant=False)
    resp = client.put(f"/dashboard/plants/{plant.id}", json={"scientific_name": "Rosa arvensis", "common_name": "Field rose"},
                      headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["slug"] == "rosa-canina"
    assert resp.json()["common_name"] == "Field rose"

    resp = client.put(f"/dashboard/plants/{plant.id}", json={"slug": "Rosa Arvensis"}, headers=user_headers)
    assert resp.json()["slug"] == "rosa-arvensis"


def test_update_forbidden_for_other_users(client, db_session, other_user, user_headers):
    plant = make_plant(db_session, "Salix alba", owner=other_user, is_admin_plant=False)
    resp = client.put(f"/dashboard/plants/{plant.id}", json={"common_name": "White willow"}, headers=user_headers)
    assert resp.status_code == 403


def test_admin_can_update_any_plant(client, db_session, other_user, admin_headers):
    plant = make_plant(db_session, "Salix alba", owner=other_user, is_admin_plant=False)
    resp = client.put(f"/dashboard/plants/{plant.id}", json={"is_published": False}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_published"] is False


def test_update_missing_plant(client, admin_headers):
    assert client.put("/dashboard/plants/999", json={}, headers=admin_headers).status_code == 404


def test_delete_removes_plant_and_image_files(client, db_session, storage, admin_headers):
    plant = make_plant(db_session, "Quercus robur")
    db_session.add(PlantImage(plant_id=plant.id, filename="a.webp", path=f"{plant.id}/a.webp"))
    db_session.commit()
    plant_id = plant.id

    assert client.delete(f"/dashboard/plants/{plant_id}", headers=admin_headers).status_code == 204
    db_session.expire_all()
    assert db_session.get(Plant, plant_id) is None
    assert db_session.query(PlantImage).count() == 0
    assert storage.removed == [("plant-images", f"{plant_id}/a.webp")]


def test_history_newest_first(client, db_session, admin_headers):
    plant_id = client.post("/dashboard/plants", json={"scientific_name": "Rosa canina"}, headers=admin_headers).json()["id"]
    client.put(f"/dashboard/plants/{plant_id}", json={"common_name": "Dog rose"}, headers=admin_headers)

    history = client.get(f"/dashboard/plants/{plant_id}/history", headers=admin_headers).json()
    assert [entry["action"] for entry in history] == ["UPDATE", "CREATE"]
    assert history[0]["diff_json"]["after"]["common_name"] == "Dog rose"
    assert history[0]["user_email"] == "admin@example.com"

    limited = client.get(f"/dashboard/plants/{plant_id}/history?limit=1", headers=admin_headers).json()
    assert len(limited) == 1
    assert client.get(f"/dashboard/plants/{plant_id}/history?limit=0", headers=admin_headers).status_code == 422
