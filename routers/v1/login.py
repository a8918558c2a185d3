# routers/v1/login.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.orm import Session

import settings
from database import get_db
from deps.auth import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    load_user,
)
from schemas import LoginIn, RefreshTokenIn
from services.audit import record_audit
from utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/login", tags=["auth"])


def _expires_label() -> str:
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    return f"{minutes // 60}h" if minutes % 60 == 0 else f"{minutes}m"


@router.post("")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    if not payload.username or not payload.password:
        raise HTTPException(400, "Username and password are required")

    user = authenticate_user(db, payload.username.strip(), payload.password)
    if not user:
        logger.info("failed login for %s", payload.username)
        raise HTTPException(401, "Invalid credentials")
    if not user.is_active:
        raise HTTPException(403, "User account is inactive")

    token = create_access_token(user)
    refresh_token = create_refresh_token(user)

    user.last_login_at = utcnow()
    record_audit(db, user, "Login", f"{user.username} logged in")
    db.commit()
    logger.info("login %s (%s)", user.username, user.role)

    return {
        "success": True,
        "token": token,
        "refreshToken": refresh_token,
        "user": {
            "user_id": user.id,
            "username": user.username,
            "full_name": user.full_name,
            "email": user.email,
            "department_id": user.department_id,
            "department": user.department_name,
            "role": user.role,
            "needsPasswordChange": bool(user.needs_password_change),
            "needsEmailVerification": not user.email_verified,
        },
        "expiresIn": _expires_label(),
        "message": f"Login successful as {user.role}",
    }


@router.post("/refresh-token")
def refresh(payload: RefreshTokenIn, db: Session = Depends(get_db)):
    if not payload.refresh_token:
        raise HTTPException(400, "Refresh token is required")
    try:
        claims = decode_refresh_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(401, "Invalid refresh token")

    user = load_user(db, claims.get("username") or "")
    if not user or not user.is_active:
        raise HTTPException(401, "Invalid refresh token")
    return {"success": True, "token": create_access_token(user)}


# OAuth2 password form (interactive API docs)
@router.post("/token")
def login_for_access_token(
    db: Session = Depends(get_db),
    form: OAuth2PasswordRequestForm = Depends(),
):
    user = authenticate_user(db, form.username, form.password)
    if not user or not user.is_active:
        raise HTTPException(status_code=400, detail="Incorrect username or password")
    return {"access_token": create_access_token(user), "token_type": "bearer"}
