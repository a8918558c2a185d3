# services/audit.py
from typing import Optional

from sqlalchemy.orm import Session

from models import AuditLog, User


def record_audit(
    db: Session,
    user: Optional[User],
    action: str,
    remarks: Optional[str] = None,
    trial_id: Optional[str] = None,
) -> AuditLog:
    """Adds to the caller's transaction; committed together with the change it describes."""
    entry = AuditLog(
        user_id=user.id if user else None,
        department_id=user.department_id if user else None,
        trial_id=trial_id,
        action=action,
        remarks=remarks,
    )
    db.add(entry)
    return entry
