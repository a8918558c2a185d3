# routers/v1/users.py
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload

from constants import (
    EMAIL_OTP_TTL_MINUTES,
    OTP_LENGTH,
    OTP_MAX_ATTEMPTS,
    PROFILE_PHOTO_MAX_CHARS,
    ROLE_ADMIN,
)
from database import get_db
from deps.auth import get_current_user, get_password_hash, verify_password
from deps.authz import require_roles
from models import Department, EmailOtp, User
from schemas import (
    ChangePasswordIn,
    ChangeStatusIn,
    SendOtpIn,
    UpdateUsernameIn,
    UploadPhotoIn,
    UserCreate,
    UserOut,
    UserUpdate,
    VerifyOtpIn,
)
from services import mailer
from services.audit import record_audit
from utils import new_otp, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------
# Helpers
# ---------------------------
def _get_user_or_404(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, "User not found")
    return u


def _username_taken(db: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(User.id).filter(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return db.query(q.exists()).scalar()


def _email_taken(db: Session, email: str, exclude_id: int) -> bool:
    q = db.query(User.id).filter(
        and_(func.lower(User.email) == email.lower(), User.id != exclude_id)
    )
    return db.query(q.exists()).scalar()


def _check_department(db: Session, department_id: Optional[int]) -> None:
    if department_id is not None and not db.get(Department, department_id):
        raise HTTPException(400, f"Department {department_id} does not exist")


def _out(u: User) -> dict:
    return UserOut.model_validate(u).model_dump()


# ---------------------------
# CRUD Users
# ---------------------------
@router.get("")
def list_users(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = (
        db.query(User)
        .options(joinedload(User.department))
        .filter(User.role != ROLE_ADMIN)
        .order_by(User.id)
        .all()
    )
    return {"users": [_out(u) for u in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
):
    if _username_taken(db, payload.username):
        raise HTTPException(409, "Username already in use")
    _check_department(db, payload.department_id)

    u = User(
        username=payload.username,
        full_name=payload.full_name,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        department_id=payload.department_id,
        role=payload.role,
        machine_shop_user_type=payload.machine_shop_user_type,
        is_active=payload.is_active,
        remarks=payload.remarks,
        needs_password_change=True,
        email_verified=False,
    )
    db.add(u)
    db.flush()
    record_audit(db, admin, "User created", f"User {u.username} ({u.role}) created")
    db.commit()
    db.refresh(u)
    return {"success": True, "message": "User created successfully", "user": _out(u)}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
):
    u = _get_user_or_404(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("username") is not None:
        data["username"] = data["username"].strip()
        if _username_taken(db, data["username"], exclude_id=user_id):
            raise HTTPException(409, "Username already in use")
    if "department_id" in data:
        _check_department(db, data["department_id"])

    new_email = data.pop("email", None)
    if new_email is not None and new_email != u.email:
        u.email = new_email
        u.email_verified = False

    new_password = data.pop("password", None)
    if new_password:
        u.password_hash = get_password_hash(new_password)
        u.needs_password_change = True

    for k, v in data.items():
        if v is not None:
            setattr(u, k, v)

    record_audit(db, admin, "User updated", f"User {u.username} updated")
    db.commit()
    db.refresh(u)
    return {"success": True, "message": "User updated successfully", "user": _out(u)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
):
    u = _get_user_or_404(db, user_id)
    if u.id == admin.id:
        raise HTTPException(400, "You cannot delete your own account")
    record_audit(db, admin, "User deleted", f"User {u.username} deleted")
    db.delete(u)
    db.commit()
    return {"success": True, "message": "User deleted successfully"}


@router.post("/change-status")
def change_status(
    payload: ChangeStatusIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
):
    if not isinstance(payload.status, bool):
        raise HTTPException(400, "Status must be a boolean")
    u = _get_user_or_404(db, payload.user_id)
    u.is_active = payload.status
    record_audit(db, admin, "User status changed", f"User {u.username} active={payload.status}")
    db.commit()
    return {"success": True, "message": f"User {'activated' if payload.status else 'deactivated'} successfully"}


# ---------------------------
# Own account
# ---------------------------
@router.post("/change-password")
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    new_pw = payload.new_password or ""
    if len(new_pw) < 6:
        raise HTTPException(400, "Password must be at least 6 characters")
    if new_pw == user.username:
        raise HTTPException(400, "Password cannot be the same as the username")
    if payload.old_password is not None and not verify_password(payload.old_password, user.password_hash):
        raise HTTPException(400, "Current password is incorrect")

    user.password_hash = get_password_hash(new_pw)
    user.needs_password_change = False
    record_audit(db, user, "Password changed", f"{user.username} changed password")
    db.commit()
    return {"success": True, "message": "Password updated successfully"}


@router.post("/update-username")
def update_username(
    payload: UpdateUsernameIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    new_name = (payload.username or "").strip()
    if not new_name:
        raise HTTPException(400, "Username is required")
    if new_name == user.username:
        raise HTTPException(400, "New username must be different from the current one")
    if len(new_name) < 3 or len(new_name) > 50:
        raise HTTPException(400, "Username must be 3-50 characters")
    if _username_taken(db, new_name, exclude_id=user.id):
        raise HTTPException(409, "Username already in use")

    old = user.username
    user.username = new_name
    record_audit(db, user, "Username changed", f"{old} -> {new_name}")
    db.commit()
    return {"success": True, "message": "Username updated successfully", "username": new_name}


@router.post("/send-otp")
def send_otp(
    payload: SendOtpIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    email = str(payload.email)
    if _email_taken(db, email, exclude_id=user.id):
        raise HTTPException(409, "Email already in use by another account")

    code = new_otp(OTP_LENGTH)
    db.add(EmailOtp(
        user_id=user.id,
        email=email,
        otp_code=code,
        expires_at=utcnow() + timedelta(minutes=EMAIL_OTP_TTL_MINUTES),
    ))
    mailer.queue_mail(db, mailer.send_otp_mail, email, otp=code, minutes=EMAIL_OTP_TTL_MINUTES, purpose="Verification")
    mailer.commit_and_send(db)
    return {"success": True, "message": "OTP sent to email"}


@router.post("/verify-otp")
def verify_otp(
    payload: VerifyOtpIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    email = str(payload.email)
    otp = (
        db.query(EmailOtp)
        .filter(
            EmailOtp.user_id == user.id,
            EmailOtp.email == email,
            EmailOtp.used.is_(False),
            EmailOtp.expires_at > utcnow(),
        )
        .order_by(EmailOtp.id.desc())
        .first()
    )
    if not otp:
        raise HTTPException(400, "OTP not found or expired")

    if not secrets.compare_digest(otp.otp_code, payload.otp.strip()):
        otp.attempts += 1
        if otp.attempts >= OTP_MAX_ATTEMPTS:
            otp.used = True
        db.commit()
        raise HTTPException(400, "Invalid OTP")

    otp.used = True
    user.email = email
    user.email_verified = True
    record_audit(db, user, "Email verified", email)
    db.commit()
    return {"success": True, "message": "Email verified successfully"}


@router.post("/upload-photo")
def upload_photo(
    payload: UploadPhotoIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    photo = payload.photo_base64
    if not isinstance(photo, str) or not photo.startswith("data:image"):
        raise HTTPException(400, "Invalid image data")
    if len(photo) > PROFILE_PHOTO_MAX_CHARS:
        raise HTTPException(400, "Image is too large (max 5MB)")
    user.profile_photo = photo
    db.commit()
    return {"success": True, "message": "Profile photo updated"}


@router.get("/profile-photo")
def profile_photo(user: User = Depends(get_current_user)):
    return {"success": True, "profilePhoto": user.profile_photo}
