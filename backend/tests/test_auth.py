"""Tests for signup, login, token rotation and the OAuth callback."""
from urllib.parse import parse_qs, urlparse

from plantcards.models import User
from plantcards.oauth import read_state, safe_next, sign_state

from conftest import PASSWORD


def test_signup_creates_user_and_profile(client, db_session):
    resp = client.post("/auth/signup", json={"email": "New@Example.com", "password": "Sprout123"})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["email"] == "new@example.com"
    assert body["is_admin"] is False

    user = db_session.query(User).filter(User.email == "new@example.com").one()
    assert user.profile is not None
    assert user.profile.show_admin_plants is True


def test_signup_rejects_weak_password(client):
    resp = client.post("/auth/signup", json={"email": "a@example.com", "password": "short"})
    assert resp.status_code == 422
    resp = client.post("/auth/signup", json={"email": "a@example.com", "password": "alllowercase1"})
    assert resp.status_code == 422


def test_signup_does_not_reveal_existing_email(client, user):
    resp = client.post("/auth/signup", json={"email": user.email, "password": "Sprout123"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Could not create account"


def test_login_returns_tokens(client, user):
    resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["refresh_token"]
    assert body["is_admin"] is False

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == user.email
    assert me.json()["last_login"] is not None


def test_login_wrong_password(client, user):
    resp = client.post("/auth/login", json={"email": user.email, "password": "Wrong1234"})
    assert resp.status_code == 401


def test_login_disabled_account(client, db_session, user):
    user.is_active = False
    db_session.commit()
    resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
    assert resp.status_code == 403


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_refresh_rotates_and_logout_revokes(client, user):
    tokens = client.post("/auth/login", json={"email": user.email, "password": PASSWORD}).json()

    rotated = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert rotated.status_code == 200
    new_refresh = rotated.json()["refresh_token"]
    assert new_refresh != tokens["refresh_token"]

    # the old token was revoked by the rotation
    assert client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401

    assert client.post("/auth/logout", json={"refresh_token": new_refresh}).status_code == 204
    assert client.post("/auth/refresh", json={"refresh_token": new_refresh}).status_code == 401


def test_admin_flag_in_login(client, admin):
    body = client.post("/auth/login", json={"email": admin.email, "password": PASSWORD}).json()
    assert body["is_admin"] is True


def test_safe_next_only_allows_local_paths():
    assert safe_next("/plants/rosa") == "/plants/rosa"
    assert safe_next("https://evil.example") == "/"
    assert safe_next("//evil.example") == "/"
    assert safe_next(None) == "/"


def test_state_round_trip():
    assert read_state(sign_state("/quiz")) == "/quiz"


def test_google_login_url(client):
    resp = client.get("/auth/oauth/google", params={"next": "/flashcards"})
    assert resp.status_code == 200
    url = urlparse(resp.json()["url"])
    query = parse_qs(url.query)
    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]
    assert read_state(query["state"][0]) == "/flashcards"


def test_callback_creates_user_sets_cookies_and_redirects(client, db_session):
    state = sign_state("/flashcards")
    resp = client.get("/auth/callback", params={"code": "abc", "state": state}, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "http://localhost:3000/flashcards"
    assert resp.headers["cache-control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
    assert resp.headers["pragma"] == "no-cache"
    assert resp.headers["expires"] == "0"
    assert "access_token" in resp.cookies

    user = db_session.query(User).filter(User.email == "fern@example.com").one()
    assert user.oauth_provider == "google"
    assert user.profile.display_name == "Fern Gully"

    # the cookie alone authenticates
    me = client.get("/auth/me")
    assert me.status_code == 200


def test_callback_links_existing_account(client, db_session, user, oauth_client):
    oauth_client.userinfo = {"sub": "google-999", "email": user.email}
    resp = client.get("/auth/callback", params={"code": "abc", "state": sign_state("/")}, follow_redirects=False)
    assert resp.status_code == 302
    assert db_session.query(User).count() == 1


def test_callback_without_code_redirects_to_error(client):
    resp = client.get("/auth/callback", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/auth/auth-code-error"


def test_callback_failed_exchange_redirects_to_error(client, oauth_client):
    oauth_client.fail_exchange = True
    resp = client.get("/auth/callback", params={"code": "abc", "state": sign_state("/")}, follow_redirects=False)
    assert resp.headers["location"] == "/auth/auth-code-error"


def test_callback_rejects_forged_state(client):
    resp = client.get("/auth/callback", params={"code": "abc", "state": "forged"}, follow_redirects=False)
    assert resp.headers["location"] == "/auth/auth-code-error"


def test_auth_code_error_page(client):
    resp = client.get("/auth/auth-code-error")
    assert resp.status_code == 200
    assert resp.json()["error"] == "auth_code_error"
