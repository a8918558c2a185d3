# routers/v1/stats.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from constants import APPROVAL_APPROVED, APPROVAL_PENDING, STATUS_CLOSED
from database import get_db
from deps.auth import get_current_user
from models import AuditLog, DepartmentProgress, TrialCard, User

router = APIRouter(prefix="/stats", tags=["stats"])

BLUE, GREEN, TEAL, YELLOW, PURPLE, ORANGE, CYAN = (
    "#007bff", "#28a745", "#20c997", "#ffc107", "#6f42c1", "#fd7e14", "#17a2b8",
)


def _stat(label, value, color, description=None) -> dict:
    d = {"label": label, "value": str(value or 0), "color": color}
    if description:
        d["description"] = description
    return d


# ---------------------------
# Counters
# ---------------------------
def _live_trials(db: Session):
    return db.query(func.count(TrialCard.trial_id)).filter(TrialCard.deleted_at.is_(None))


def _dept_trials(db: Session, department_id) -> int:
    return (
        db.query(func.count(distinct(DepartmentProgress.trial_id)))
        .filter(DepartmentProgress.department_id == department_id)
        .scalar()
    )


def _dept_rows(db: Session, department_id, approval_status: str) -> int:
    return (
        db.query(func.count(DepartmentProgress.id))
        .filter(
            DepartmentProgress.department_id == department_id,
            DepartmentProgress.approval_status == approval_status,
        )
        .scalar()
    )


def _team_members(db: Session, department_id) -> int:
    return (
        db.query(func.count(User.id))
        .filter(User.department_id == department_id, User.is_active.is_(True))
        .scalar()
    )


def admin_stats(db: Session) -> list:
    total_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
    total = _live_trials(db).scalar()
    ongoing = _live_trials(db).filter(TrialCard.status != STATUS_CLOSED).scalar()
    pending = (
        db.query(func.count(DepartmentProgress.id))
        .filter(DepartmentProgress.approval_status == APPROVAL_PENDING)
        .scalar()
    )
    return [
        _stat("Total Users", total_users, BLUE, "System users"),
        _stat("Total Trials", total, GREEN, "All trials created"),
        _stat("Ongoing Trials", ongoing, TEAL, "Not yet closed"),
        _stat("Pending Tasks", pending, YELLOW, "Awaiting action"),
    ]


def admin_trial_stats(db: Session) -> list:
    total = _live_trials(db).scalar()
    closed = _live_trials(db).filter(TrialCard.status == STATUS_CLOSED).scalar()
    return [
        _stat("Total Trials", total, BLUE),
        _stat("Ongoing", (total or 0) - (closed or 0), CYAN),
        _stat("Approved", closed, GREEN),
    ]


def methods_stats(db: Session, user: User, dashboard: bool = False) -> list:
    dept = user.department_id
    reviews = _dept_trials(db, dept)
    completed = _dept_rows(db, dept, APPROVAL_APPROVED)
    ongoing = _dept_rows(db, dept, APPROVAL_PENDING)
    team = _team_members(db, dept)
    if dashboard:
        return [
            _stat("Process Reviews", reviews, BLUE, "Total trials in department"),
            _stat("Completed Trials", completed, GREEN, "Approved trials"),
            _stat("Team Members", team, PURPLE, "Methods team"),
            _stat("Active Projects", ongoing, ORANGE, "In progress"),
        ]
    return [
        _stat("Process Reviews", reviews, BLUE, "Total trials in department"),
        _stat("Completed Trials", completed, GREEN, "Approved trials"),
        _stat("Ongoing Trials", ongoing, TEAL, "Not yet approved"),
        _stat("Team Members", team, PURPLE, "Methods team"),
    ]


def hod_stats(db: Session, user: User) -> list:
    dept = user.department_id
    return [
        _stat("Department Trials", _dept_trials(db, dept), BLUE, "Trials handled by the department"),
        _stat("Pending Review", _dept_rows(db, dept, APPROVAL_PENDING), YELLOW, "Awaiting approval"),
        _stat("Approved", _dept_rows(db, dept, APPROVAL_APPROVED), GREEN, "Approved by the department"),
    ]


def user_stats(db: Session, user: User) -> list:
    my_tasks = (
        db.query(func.count(DepartmentProgress.id))
        .join(TrialCard, TrialCard.trial_id == DepartmentProgress.trial_id)
        .filter(
            DepartmentProgress.username == user.username,
            DepartmentProgress.approval_status == APPROVAL_PENDING,
            TrialCard.deleted_at.is_(None),
        )
        .scalar()
    )
    completed = (
        db.query(func.count(distinct(AuditLog.trial_id)))
        .filter(
            AuditLog.user_id == user.id,
            AuditLog.trial_id.isnot(None),
            AuditLog.action.in_(("Department progress updated", "Department progress approved")),
        )
        .scalar()
    )
    return [
        _stat("My Tasks", my_tasks, BLUE, "Assigned tasks"),
        _stat("Completed", completed, GREEN, "Finished tasks"),
        _stat("Pending", my_tasks, YELLOW, "Awaiting review"),
    ]


@router.get("/dashboard")
def dashboard(
    role: Optional[str] = Query(None),
    stats_type: Optional[str] = Query(None, alias="statsType"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """`role` selects the card set (Admin / Methods / HOD / User), defaulting to the caller's role."""
    role = role or user.role
    if stats_type == "admin_trials":
        stats = admin_trial_stats(db)
    elif stats_type == "methods_dashboard":
        stats = methods_stats(db, user, dashboard=True)
    elif role == "Admin":
        stats = admin_stats(db)
    elif role == "Methods":
        stats = methods_stats(db, user)
    elif role == "HOD":
        stats = hod_stats(db, user)
    elif role == "User":
        stats = user_stats(db, user)
    else:
        stats = []
    return {"success": True, "data": {"stats": stats}}
