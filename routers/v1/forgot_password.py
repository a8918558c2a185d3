# routers/v1/forgot_password.py
import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from constants import RESET_OTP_TTL_MINUTES
from database import get_db
from deps.auth import get_password_hash
from models import PasswordResetOtp, User
from schemas import RequestResetIn, ResetPasswordIn
from services import mailer
from services.audit import record_audit
from utils import new_otp, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forgot-password", tags=["auth"])


@router.post("/request-reset")
def request_reset(payload: RequestResetIn, db: Session = Depends(get_db)):
    email = str(payload.email)
    user = (
        db.query(User)
        .filter(User.username == payload.username.strip(), func.lower(User.email) == email.lower())
        .first()
    )
    if not user:
        raise HTTPException(404, "No account matches that username and email")

    # one live code per user
    db.query(PasswordResetOtp).filter(
        PasswordResetOtp.user_id == user.id, PasswordResetOtp.used.is_(False)
    ).update({PasswordResetOtp.used: True}, synchronize_session=False)

    code = new_otp()
    db.add(PasswordResetOtp(
        user_id=user.id,
        otp_code=code,
        expires_at=utcnow() + timedelta(minutes=RESET_OTP_TTL_MINUTES),
    ))
    mailer.queue_mail(db, mailer.send_otp_mail, user.email, otp=code, minutes=RESET_OTP_TTL_MINUTES, purpose="Password reset")
    mailer.commit_and_send(db)
    logger.info("password reset requested for %s", user.username)
    return {"success": True, "message": "OTP sent to your email"}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == payload.username.strip()).first()
    otp = None
    if user:
        otp = (
            db.query(PasswordResetOtp)
            .filter(
                PasswordResetOtp.user_id == user.id,
                PasswordResetOtp.used.is_(False),
                PasswordResetOtp.expires_at > utcnow(),
            )
            .order_by(PasswordResetOtp.id.desc())
            .first()
        )
    if not otp or not secrets.compare_digest(otp.otp_code, payload.otp.strip()):
        raise HTTPException(400, "Invalid or expired OTP")

    otp.used = True
    user.password_hash = get_password_hash(payload.new_password)
    user.email_verified = True
    user.needs_password_change = False
    record_audit(db, user, "Password reset", f"{user.username} reset password with OTP")
    db.commit()
    return {"success": True, "message": "Password reset successfully"}
