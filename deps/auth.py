# deps/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session, joinedload

import settings
from database import get_db
from models import User

logger = logging.getLogger(__name__)

# auto_error=False: the missing-token message is ours, not FastAPI's
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login/token", auto_error=False)
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_SALT_ROUNDS,
)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def _require_secret() -> str:
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    return settings.JWT_SECRET


def create_access_token(user: User, minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user.id),
        "user_id": user.id,
        "username": user.username,
        "department_id": user.department_id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(to_encode, _require_secret(), algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user: User) -> str:
    _require_secret()
    now = datetime.now(timezone.utc)
    to_encode = {
        "user_id": user.id,
        "username": user.username,
        "type": "refresh",
        "iat": now,
        "exp": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(to_encode, settings.refresh_secret(), algorithm=settings.JWT_ALGORITHM)


def decode_refresh_token(token: str) -> dict:
    """Payload of a valid refresh token, else JWTError."""
    payload = jwt.decode(token, settings.refresh_secret(), algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != "refresh":
        raise JWTError("not a refresh token")
    return payload


def load_user(db: Session, username: str) -> Optional[User]:
    return (
        db.query(User)
        .options(joinedload(User.department))
        .filter(User.username == username)
        .first()
    )


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    user = load_user(db, username)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
) -> User:
    """Bearer token -> User (re-read from the database on every request)."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    secret = _require_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = payload.get("username")
    if not username:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = load_user(db, username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found. Invalid token.")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")

    request.state.user = user
    return user
