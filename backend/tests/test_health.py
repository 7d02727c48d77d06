"""Tests for health, root info and response middleware."""


def test_health_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": "ok", "storage": "ok"}


def test_health_degraded_when_storage_down(client, storage, monkeypatch):
    def broken(bucket):
        raise RuntimeError("no route to host")

    monkeypatch.setattr(storage, "ping", broken)
    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json() == {"status": "degraded", "db": "ok", "storage": "error"}


def test_root_lists_entry_points(client):
    body = client.get("/").json()
    assert body["name"] == "Plant Flashcards API"
    assert body["study"]["deck"] == "/flashcards/deck"


def test_security_headers(client):
    resp = client.get("/")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_request_id_is_echoed_or_generated(client):
    assert client.get("/", headers={"X-Request-ID": "abc-123"}).headers["X-Request-ID"] == "abc-123"
    assert client.get("/").headers["X-Request-ID"]
