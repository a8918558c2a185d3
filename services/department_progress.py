# services/department_progress.py
"""
Moves a trial card through the departments listed in department_flow.

Each department gets one department_progress row per trial:
  pending  -> somebody in that department (User, or the HOD once submitted) owes work
  approved -> the department is done

Every function only adds/changes rows in the caller's session; the route commits
(or rolls back) the whole step together with the record that triggered it.
"""
import logging
from typing import Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from constants import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    ROLE_ADMIN,
    ROLE_HOD,
    ROLE_USER,
    STATUS_CLOSED,
    STATUS_IN_PROGRESS,
    TRIAL_TYPE_CUSTOMER_END,
    TRIAL_TYPE_REGULAR,
    Dept,
)
from errors import WorkflowError
from models import Department, DepartmentFlow, DepartmentProgress, TrialCard, User
from services import mailer
from services.audit import record_audit
from services.trial_report import (
    generate_and_store_consolidated_report,
    generate_and_store_trial_report,
)
from utils import utcnow

logger = logging.getLogger(__name__)


# ----------------------------
# Lookups
# ----------------------------
def flow_department_ids(db: Session) -> List[int]:
    rows = db.query(DepartmentFlow).order_by(DepartmentFlow.sequence_no).all()
    return [r.department_id for r in rows]


def progress_by_department(db: Session, trial_id: str) -> Dict[int, DepartmentProgress]:
    rows = db.query(DepartmentProgress).filter(DepartmentProgress.trial_id == trial_id).all()
    return {r.department_id: r for r in rows}


def resolve_assignee(db: Session, department_id: int, trial_type: Optional[str], role: str) -> Optional[User]:
    """
    First active user with `role` who works `department_id` for this kind of trial.
    MACHINE SHOP is split by trial type: customer-end machining is checked by
    METALLURGICAL INSPECTION, in-house machining by the NPD or REGULAR machinists.
    """
    department_id = int(department_id)
    q = db.query(User).filter(User.is_active.is_(True), User.role == role)
    if department_id == Dept.MACHINE_SHOP:
        if trial_type == TRIAL_TYPE_CUSTOMER_END:
            q = q.filter(User.department_id == int(Dept.METALLURGICAL_INSPECTION))
        else:
            kind = "REGULAR" if trial_type == TRIAL_TYPE_REGULAR else "NPD"
            q = q.filter(
                User.department_id == int(Dept.MACHINE_SHOP),
                User.machine_shop_user_type == kind,
            )
    else:
        q = q.filter(User.department_id == department_id)
    return q.order_by(User.id).first()


def _department_name(db: Session, department_id: int) -> str:
    d = db.get(Department, department_id)
    return d.name if d else str(department_id)


def _approve(row: DepartmentProgress, remarks: Optional[str] = None) -> None:
    row.approval_status = APPROVAL_APPROVED
    row.completed_at = utcnow()
    if remarks:
        row.remarks = remarks


# ----------------------------
# Workflow steps
# ----------------------------
def create_department_progress(db: Session, trial: TrialCard, user: User) -> DepartmentProgress:
    """First flow department (METHODS) starts pending on the creator."""
    flow = flow_department_ids(db)
    if not flow:
        raise WorkflowError("Department flow is not configured", status_code=500)

    row = DepartmentProgress(
        trial_id=trial.trial_id,
        department_id=flow[0],
        username=user.username,
        approval_status=APPROVAL_PENDING,
        remarks=f"Trial {trial.trial_id} created by {user.username} for part name {trial.part_name}",
    )
    db.add(row)
    db.flush()
    record_audit(db, user, "Department progress added", row.remarks, trial.trial_id)
    return row


def submit_for_review(db: Session, trial: TrialCard, user: User, department_id: int) -> Optional[DepartmentProgress]:
    """
    A department User finished their form. With an active HOD the pending row
    waits for HOD approval; without one the department is approved right away.
    """
    record_audit(
        db, user, "Department progress updated",
        f"Department {department_id} submitted by {user.username}", trial.trial_id,
    )
    row = progress_by_department(db, trial.trial_id).get(department_id)
    if row is not None and row.approval_status == APPROVAL_APPROVED:
        logger.info("trial %s dept %s already approved, resubmission ignored", trial.trial_id, department_id)
        return row

    hod = resolve_assignee(db, department_id, trial.trial_type, ROLE_HOD)
    if hod is not None:
        if row is None:
            row = DepartmentProgress(trial_id=trial.trial_id, department_id=department_id)
            db.add(row)
        row.username = hod.username
        row.approval_status = APPROVAL_PENDING
        row.remarks = "HOD approval pending"
        db.flush()
        if hod.email:
            mailer.queue_mail(db, mailer.send_hod_review_mail, hod.email, trial=trial, submitted_by=user.username)
        return row

    return _move_on(db, trial, user, department_id)


def approve_department(db: Session, trial: TrialCard, user: User, department_id: int) -> Optional[DepartmentProgress]:
    """HOD sign-off for `department_id`, then hand the trial to the next department."""
    row = progress_by_department(db, trial.trial_id).get(department_id)
    if row is None:
        row = DepartmentProgress(trial_id=trial.trial_id, department_id=department_id, username=user.username)
        db.add(row)
    if row.approval_status != APPROVAL_APPROVED:
        _approve(row, f"Approved by {user.role}")
    db.flush()
    record_audit(
        db, user, "Department progress approved",
        f"Department {department_id} approved by {user.username}", trial.trial_id,
    )
    return _move_on(db, trial, user, department_id)


def _move_on(db: Session, trial: TrialCard, user: User, department_id: int) -> Optional[DepartmentProgress]:
    rows = progress_by_department(db, trial.trial_id)
    next_dept = next((d for d in flow_department_ids(db) if d not in rows), None)
    if next_dept is None:
        close_trial(db, trial, user)
        return None
    return assign_to_next_department(db, trial, user, department_id, next_dept)


def assign_to_next_department(
    db: Session,
    trial: TrialCard,
    user: User,
    current_department_id: int,
    next_department_id: int,
) -> Optional[DepartmentProgress]:
    rows = progress_by_department(db, trial.trial_id)
    current = rows.get(current_department_id)
    if current is not None and current.approval_status == APPROVAL_PENDING:
        _approve(current)

    # work still open somewhere (e.g. a department reached early through a draft)
    flow = flow_department_ids(db)
    open_depts = [d for d in flow if d in rows and rows[d].approval_status == APPROVAL_PENDING]
    if open_depts:
        trial.current_department_id = open_depts[0]
        trial.status = STATUS_IN_PROGRESS
        db.flush()
        return None

    if next_department_id in rows:
        return None

    assignee = resolve_assignee(db, next_department_id, trial.trial_type, ROLE_USER)
    if assignee is None:
        raise WorkflowError("No active user found for the next department")

    row = DepartmentProgress(
        trial_id=trial.trial_id,
        department_id=next_department_id,
        username=assignee.username,
        approval_status=APPROVAL_PENDING,
        remarks="User submission pending",
    )
    db.add(row)
    trial.current_department_id = next_department_id
    trial.status = STATUS_IN_PROGRESS
    db.flush()

    dept_name = _department_name(db, next_department_id)
    record_audit(
        db, user, "Department progress updated",
        f"Trial {trial.trial_id} assigned to {assignee.username} ({dept_name})", trial.trial_id,
    )
    if assignee.email:
        mailer.queue_mail(
            db, mailer.send_assignment_mail, assignee.email,
            trial=trial, department_name=dept_name, username=assignee.username,
        )
    return row


def close_trial(db: Session, trial: TrialCard, user: User) -> None:
    """Last department done: close the card and file its reports."""
    for row in progress_by_department(db, trial.trial_id).values():
        if row.approval_status == APPROVAL_PENDING:
            _approve(row)
    trial.status = STATUS_CLOSED
    db.flush()

    generate_and_store_trial_report(db, trial.trial_id)
    generate_and_store_consolidated_report(db, trial.pattern_code)
    record_audit(
        db, user, "Department progress completed",
        f"Trial {trial.trial_id} closed", trial.trial_id,
    )
    logger.info("trial %s closed by %s", trial.trial_id, user.username)


def trigger_next_department(db: Session, trial: TrialCard, user: User, department_id: int) -> Optional[DepartmentProgress]:
    """
    Draft save: the following department may start in parallel.
    The caller's own row stays pending and the trial's current department is unchanged.
    """
    flow = flow_department_ids(db)
    if department_id not in flow:
        return None
    idx = flow.index(department_id)
    if idx + 1 >= len(flow):
        return None
    next_dept = flow[idx + 1]
    if next_dept in progress_by_department(db, trial.trial_id):
        return None

    assignee = resolve_assignee(db, next_dept, trial.trial_type, ROLE_USER)
    if assignee is None:
        raise WorkflowError("No active user found for the next department")

    row = DepartmentProgress(
        trial_id=trial.trial_id,
        department_id=next_dept,
        username=assignee.username,
        approval_status=APPROVAL_PENDING,
        remarks="User submission pending",
    )
    db.add(row)
    db.flush()

    dept_name = _department_name(db, next_dept)
    record_audit(
        db, user, "Department progress updated (Draft)",
        f"Trial {trial.trial_id} opened for {assignee.username} ({dept_name})", trial.trial_id,
    )
    if assignee.email:
        mailer.queue_mail(
            db, mailer.send_assignment_mail, assignee.email,
            trial=trial, department_name=dept_name, username=assignee.username,
        )
    return row


def advance_after_save(
    db: Session,
    trial: TrialCard,
    user: User,
    department_id: int,
    *,
    is_draft: bool,
    created: bool,
) -> None:
    """
    What a saved department record does to the workflow.
    Admin saves never move it. Drafts open the next department.
    Otherwise: Users (and any first submission) go to review, HODs approve.
    """
    if user.role == ROLE_ADMIN:
        return
    if is_draft:
        trigger_next_department(db, trial, user, department_id)
    elif created or user.role == ROLE_USER:
        submit_for_review(db, trial, user, department_id)
    else:
        approve_department(db, trial, user, department_id)


def toggle_approval_status(db: Session, trial_id: str, department_id: int, user: User) -> DepartmentProgress:
    row = (
        db.query(DepartmentProgress)
        .filter(DepartmentProgress.trial_id == trial_id, DepartmentProgress.department_id == department_id)
        .first()
    )
    if not row:
        raise HTTPException(404, "Progress record not found")

    if row.approval_status == APPROVAL_PENDING:
        _approve(row)
    else:
        row.approval_status = APPROVAL_PENDING
        row.completed_at = None
    db.flush()
    record_audit(
        db, user, "Approval Status Toggled",
        f"Department {department_id} set to {row.approval_status}", trial_id,
    )
    return row
