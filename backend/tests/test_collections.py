"""Tests for collections: visibility, CRUD and plant membership."""
from plantcards.models import AuditLog, Collection, CollectionPlant

from conftest import auth_headers, make_plant, make_user


def create(client, headers, name="Trees", **extra):
    return client.post("/collections", json={"name": name, **extra}, headers=headers)


def test_admin_collection_visible_to_everyone(client, admin_headers, user_headers):
    resp = create(client, admin_headers, "Trees")
    assert resp.status_code == 201
    assert resp.json()["is_admin_collection"] is True

    assert [c["name"] for c in client.get("/collections").json()] == ["Trees"]
    assert [c["name"] for c in client.get("/collections", headers=user_headers).json()] == ["Trees"]


def test_user_collection_visible_only_to_owner(client, user_headers, db_session, other_user):
    create(client, user_headers, "My shrubs")
    assert client.get("/collections").json() == []
    assert client.get("/collections", headers=auth_headers(other_user)).json() == []
    assert [c["name"] for c in client.get("/collections", headers=user_headers).json()] == ["My shrubs"]


def test_hiding_admin_collections(client, db_session, admin_headers):
    viewer = make_user(db_session, "solo@example.com", show_admin_collections=False)
    create(client, admin_headers, "Trees")
    assert client.get("/collections", headers=auth_headers(viewer)).json() == []


def test_collections_ordered_by_name_with_counts(client, db_session, admin_headers):
    oak = make_plant(db_session, "Quercus robur")
    trees = create(client, admin_headers, "Trees").json()
    create(client, admin_headers, "Alpines")
    client.post(f"/collections/{trees['id']}/plants", json={"plant_id": oak.id}, headers=admin_headers)

    listing = client.get("/collections").json()
    assert [(c["name"], c["plant_count"]) for c in listing] == [("Alpines", 0), ("Trees", 1)]


def test_add_plant_twice_conflicts(client, db_session, admin_headers):
    oak = make_plant(db_session, "Quercus robur")
    collection_id = create(client, admin_headers).json()["id"]

    first = client.post(f"/collections/{collection_id}/plants", json={"plant_id": oak.id}, headers=admin_headers)
    assert first.status_code == 201
    assert first.json()["plant_count"] == 1
    again = client.post(f"/collections/{collection_id}/plants", json={"plant_id": oak.id}, headers=admin_headers)
    assert again.status_code == 409


def test_add_missing_plant(client, admin_headers):
    collection_id = create(client, admin_headers).json()["id"]
    resp = client.post(f"/collections/{collection_id}/plants", json={"plant_id": 404}, headers=admin_headers)
    assert resp.status_code == 404


def test_detail_lists_visible_plants(client, db_session, user, admin_headers):
    oak = make_plant(db_session, "Quercus robur")
    private = make_plant(db_session, "Rosa canina", owner=user, is_admin_plant=False)
    collection_id = create(client, admin_headers).json()["id"]
    for plant in (oak, private):
        client.post(f"/collections/{collection_id}/plants", json={"plant_id": plant.id}, headers=admin_headers)

    anonymous = client.get(f"/collections/{collection_id}").json()
    assert [p["scientific_name"] for p in anonymous["plants"]] == ["Quercus robur"]
    owner_view = client.get(f"/collections/{collection_id}", headers=auth_headers(user)).json()
    assert [p["scientific_name"] for p in owner_view["plants"]] == ["Quercus robur", "Rosa canina"]


def test_unpublished_collection_hidden(client, admin_headers):
    collection_id = create(client, admin_headers, is_published=False).json()["id"]
    assert client.get(f"/collections/{collection_id}").status_code == 404
    assert client.get(f"/collections/{collection_id}", headers=admin_headers).status_code == 200


def test_update_and_delete_by_owner_only(client, db_session, user_headers, other_user):
    collection_id = create(client, user_headers, "Mine").json()["id"]
    other = auth_headers(other_user)

    assert client.put(f"/collections/{collection_id}", json={"name": "Theirs"}, headers=other).status_code == 403
    resp = client.put(f"/collections/{collection_id}", json={"name": "Renamed"}, headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"

    assert client.delete(f"/collections/{collection_id}", headers=other).status_code == 403
    assert client.delete(f"/collections/{collection_id}", headers=user_headers).status_code == 204
    assert db_session.query(Collection).count() == 0
    actions = [entry.action for entry in db_session.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["CREATE", "UPDATE", "DELETE"]


def test_remove_plant(client, db_session, admin_headers):
    oak = make_plant(db_session, "Quercus robur")
    collection_id = create(client, admin_headers).json()["id"]
    client.post(f"/collections/{collection_id}/plants", json={"plant_id": oak.id}, headers=admin_headers)

    assert client.delete(f"/collections/{collection_id}/plants/{oak.id}", headers=admin_headers).status_code == 204
    assert db_session.query(CollectionPlant).count() == 0
    assert client.delete(f"/collections/{collection_id}/plants/{oak.id}", headers=admin_headers).status_code == 404


def test_blank_name_rejected(client, admin_headers):
    assert create(client, admin_headers, "").status_code == 422
    assert create(client, admin_headers, "   ").status_code == 400


def test_cannot_add_someone_elses_hidden_plant(client, db_session, user_headers, other_user):
    draft = make_plant(db_session, "Salix alba", owner=other_user, is_admin_plant=False, is_published=False)
    collection_id = create(client, user_headers, "Mine").json()["id"]

    resp = client.post(f"/collections/{collection_id}/plants", json={"plant_id": draft.id}, headers=user_headers)
    assert resp.status_code == 404
    assert db_session.query(CollectionPlant).count() == 0
