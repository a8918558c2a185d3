# routers/v1/department_progress.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from constants import APPROVAL_APPROVED, APPROVAL_PENDING, ROLE_ADMIN
from database import get_db
from deps.auth import get_current_user
from deps.authz import require_roles
from models import Department, DepartmentProgress, TrialCard, User
from schemas import ToggleApprovalIn
from services.department_progress import toggle_approval_status
from utils import strip_quotes

router = APIRouter(prefix="/department-progress", tags=["department-progress"])


def _row(p: DepartmentProgress, d: Department, t: TrialCard) -> dict:
    return {
        "id": p.id,
        "trial_id": p.trial_id,
        "department_id": p.department_id,
        "department_name": d.name,
        "username": p.username,
        "approval_status": p.approval_status,
        "completed_at": p.completed_at,
        "remarks": p.remarks,
        "part_name": t.part_name,
        "pattern_code": t.pattern_code,
        "trial_type": t.trial_type,
        "material_grade": t.material_grade,
        "date_of_sampling": t.date_of_sampling,
        "status": t.status,
        "current_department_id": t.current_department_id,
    }


def _joined(db: Session):
    return (
        db.query(DepartmentProgress, Department, TrialCard)
        .join(Department, Department.id == DepartmentProgress.department_id)
        .join(TrialCard, TrialCard.trial_id == DepartmentProgress.trial_id)
        .filter(TrialCard.deleted_at.is_(None))
    )


@router.get("/get-progress")
def get_progress(
    username: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Pending work assigned to `username` (defaults to the caller)."""
    name = strip_quotes(username) or user.username
    rows = (
        _joined(db)
        .filter(DepartmentProgress.username == name, DepartmentProgress.approval_status == APPROVAL_PENDING)
        .order_by(DepartmentProgress.created_at.desc(), DepartmentProgress.id.desc())
        .all()
    )
    return {"success": True, "data": [_row(p, d, t) for p, d, t in rows]}


@router.get("/get-completed-trials")
def get_completed_trials(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = (
        _joined(db)
        .filter(
            DepartmentProgress.department_id == user.department_id,
            DepartmentProgress.approval_status == APPROVAL_APPROVED,
        )
        .order_by(DepartmentProgress.completed_at.desc())
        .all()
    )
    return {"success": True, "data": [_row(p, d, t) for p, d, t in rows]}


@router.get("/get-progress-by-trial-id")
def get_progress_by_trial(
    trial_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tid = strip_quotes(trial_id)
    if not tid:
        raise HTTPException(400, "trial_id is required")
    rows = (
        _joined(db)
        .filter(DepartmentProgress.trial_id == tid, DepartmentProgress.approval_status == APPROVAL_APPROVED)
        .order_by(DepartmentProgress.completed_at)
        .all()
    )
    return {"success": True, "data": [_row(p, d, t) for p, d, t in rows]}


@router.put("/toggle-approval-status")
def toggle_approval(
    payload: ToggleApprovalIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(ROLE_ADMIN)),
):
    row = toggle_approval_status(db, strip_quotes(payload.trial_id), payload.department_id, admin)
    db.commit()
    return {
        "success": True,
        "message": f"Approval status changed to {row.approval_status}",
        "approval_status": row.approval_status,
    }
