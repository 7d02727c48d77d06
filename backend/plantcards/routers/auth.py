"""Authentication API endpoints, including the OAuth redirect callback."""
import logging
from typing import Optional
from urllib.parse import urljoin

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plantcards.auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    create_access_token,
    ensure_profile,
    get_current_user,
    hash_password,
    issue_session,
    revoke_refresh_token,
    rotate_refresh_token,
    verify_password,
)
from plantcards.config import get_settings
from plantcards.database import get_db
from plantcards.models import Profile, User
from plantcards.oauth import GoogleOAuthClient, OAuthError, get_oauth_client, read_state, sign_state
from plantcards.ratelimit import limiter
from plantcards.schemas import (
    AuthErrorResponse,
    LoginRequest,
    LogoutRequest,
    OAuthUrlResponse,
    RefreshRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()
logger = logging.getLogger("plantcards.auth")

AUTH_ERROR_PATH = "/auth/auth-code-error"
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.post("/signup", response_model=UserResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
def signup(request: Request, data: SignupRequest, db: Session = Depends(get_db)):
    """Create a new user account with a default profile."""
    existing = db.query(User).filter(User.email == data.email).first()
    if existing:
        # Don't reveal if email exists (prevent enumeration)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Could not create account")

    user = User(email=data.email, password_hash=hash_password(data.password))
    try:
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id))
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Could not create account")
    except Exception:
        db.rollback()
        raise

    logger.info("Created account %s", user.id)
    return user


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    """Login and get access and refresh tokens."""
    user = db.query(User).filter(User.email == data.email).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

    return issue_session(db, user)


@router.post("/refresh", response_model=TokenResponse)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    user, new_refresh = rotate_refresh_token(db, data.refresh_token)
    return {
        "access_token": create_access_token(user),
        "refresh_token": new_refresh,
        "token_type": "bearer",
        "is_admin": user.is_admin,
    }


@router.post("/logout", status_code=204)
def logout(request: Request, data: Optional[LogoutRequest] = None, db: Session = Depends(get_db)):
    raw_token = data.refresh_token if data else request.cookies.get(REFRESH_COOKIE)
    if raw_token:
        revoke_refresh_token(db, raw_token)
    response = Response(status_code=204)
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return response


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user


# === OAuth ===
@router.get("/oauth/google", response_model=OAuthUrlResponse)
def google_login(next: str = "/", oauth_client: Optional[GoogleOAuthClient] = Depends(get_oauth_client)):
    """Provider authorization URL; the client redirects the browser there."""
    if oauth_client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OAuth is not configured")
    return {"url": oauth_client.authorization_url(sign_state(next))}


def _error_redirect() -> RedirectResponse:
    return RedirectResponse(AUTH_ERROR_PATH, status_code=status.HTTP_302_FOUND, headers=NO_CACHE_HEADERS)


def _find_or_create_oauth_user(db: Session, info: dict) -> User:
    email = info["email"].strip().lower()
    user = (
        db.query(User)
        .filter(User.oauth_provider == "google", User.oauth_subject == info["sub"])
        .first()
    )
    if user is None:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email)
            db.add(user)
            db.flush()
            logger.info("Created account %s from Google sign-in", user.id)
        user.oauth_provider = "google"
        user.oauth_subject = info["sub"]
    profile = ensure_profile(db, user)
    if not profile.display_name and info.get("name"):
        profile.display_name = info["name"][:100]
    db.commit()
    return user


@router.get("/callback")
def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_db),
    oauth_client: Optional[GoogleOAuthClient] = Depends(get_oauth_client),
):
    """Exchange the authorization code, start a session and redirect to ``next``."""
    if not code or oauth_client is None:
        return _error_redirect()

    try:
        next_path = read_state(state)
        tokens = oauth_client.exchange_code(code)
        info = oauth_client.fetch_userinfo(tokens["access_token"])
    except OAuthError as exc:
        logger.warning("OAuth callback failed: %s", exc)
        return _error_redirect()

    try:
        user = _find_or_create_oauth_user(db, info)
    except IntegrityError:
        db.rollback()
        logger.warning("OAuth callback could not link account for %s", info.get("email"))
        return _error_redirect()
    except Exception:
        db.rollback()
        raise

    if not user.is_active:
        return _error_redirect()

    session = issue_session(db, user)
    response = RedirectResponse(
        urljoin(settings.site_url, next_path), status_code=status.HTTP_302_FOUND, headers=NO_CACHE_HEADERS
    )
    secure = settings.app_env == "production"
    response.set_cookie(
        ACCESS_COOKIE, session["access_token"], httponly=True, secure=secure, samesite="lax",
        max_age=settings.jwt_access_expire_minutes * 60,
    )
    response.set_cookie(
        REFRESH_COOKIE, session["refresh_token"], httponly=True, secure=secure, samesite="lax",
        max_age=settings.jwt_refresh_expire_days * 86400,
    )
    return response


@router.get("/auth-code-error", response_model=AuthErrorResponse)
def auth_code_error():
    return {
        "error": "auth_code_error",
        "message": "Sign-in could not be completed. The link may have expired; please try again.",
    }
