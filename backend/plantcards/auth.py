"""Authentication utilities: password hashing, JWT, refresh tokens and user dependencies."""
from datetime import timedelta
from hashlib import sha256
from typing import Optional
from uuid import UUID, uuid4

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from plantcards.config import get_settings
from plantcards.database import as_utc, get_db, utcnow
from plantcards.models import Profile, RefreshToken, User

settings = get_settings()
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


# === Password helpers ===
def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    has_upper = any(c.isupper() for c in value)
    has_lower = any(c.islower() for c in value)
    has_digit = any(c.isdigit() for c in value)
    if not (has_upper and has_lower and has_digit):
        raise ValueError("Password must include upper/lowercase letters and a number")
    return value


# === Token helpers ===
def _token_hash(token: str) -> str:
    return sha256(token.encode()).hexdigest()


def create_access_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "admin": user.is_admin,
        "exp": utcnow() + timedelta(minutes=settings.jwt_access_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm="HS256")


def create_refresh_token(db: Session, user: User) -> str:
    raw_token = uuid4().hex + uuid4().hex  # 64-char random string
    rt = RefreshToken(
        user_id=user.id,
        token_hash=_token_hash(raw_token),
        expires_at=utcnow() + timedelta(days=settings.jwt_refresh_expire_days),
    )
    db.add(rt)
    db.commit()
    return raw_token


def rotate_refresh_token(db: Session, raw_token: str) -> tuple[User, str]:
    """Validate existing refresh token, revoke it, and issue new one. Returns (user, new_raw_token)."""
    rt = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == _token_hash(raw_token), RefreshToken.revoked_at.is_(None))
        .first()
    )
    if not rt or as_utc(rt.expires_at) < utcnow():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired refresh token")

    user = db.query(User).filter(User.id == rt.user_id, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or disabled")

    # Revoke old
    rt.revoked_at = utcnow()
    db.commit()

    return user, create_refresh_token(db, user)


def revoke_refresh_token(db: Session, raw_token: str) -> None:
    rt = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == _token_hash(raw_token), RefreshToken.revoked_at.is_(None))
        .first()
    )
    if rt:
        rt.revoked_at = utcnow()
        db.commit()


def issue_session(db: Session, user: User) -> dict:
    user.last_login = utcnow()
    db.commit()
    return {
        "access_token": create_access_token(user),
        "refresh_token": create_refresh_token(db, user),
        "token_type": "bearer",
        "is_admin": user.is_admin,
    }


def ensure_profile(db: Session, user: User) -> Profile:
    if user.profile is None:
        user.profile = Profile(id=user.id)
        db.flush()
    return user.profile


# === Dependencies: current user from bearer token or cookie ===
def _decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=["HS256"])
    except JWTError:
        return None


def _raw_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE)


def _load_user(db: Session, token: str) -> Optional[User]:
    payload = _decode_access_token(token)
    if not payload or "sub" not in payload:
        return None
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        return None
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        return None
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = _raw_token(request, credentials)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = _load_user(db, token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The signed-in user for public pages, or None for anonymous viewers."""
    token = _raw_token(request, credentials)
    if not token:
        return None
    return _load_user(db, token)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def can_manage(user: User, owner_id) -> bool:
    return user.is_admin or (owner_id is not None and owner_id == user.id)
