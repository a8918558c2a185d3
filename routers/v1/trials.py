# routers/v1/trials.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import exists
from sqlalchemy.orm import Session, joinedload

from constants import (
    ROLE_ADMIN,
    ROLE_HOD,
    STATUS_CREATED,
    STATUS_IN_PROGRESS,
    TRIAL_EDIT_NOTIFY_DEPARTMENTS,
    Dept,
)
from database import get_db
from deps.auth import get_current_user
from deps.authz import require_departments, require_roles
from generic_router import get_trial_or_404
from models import (
    ConsolidatedReport,
    DepartmentProgress,
    TrialCard,
    TrialReport,
    User,
)
from schemas import TrialCreate, TrialIdsIn, TrialOut, TrialUpdate
from services import mailer
from services.audit import record_audit
from services.department_progress import (
    approve_department,
    create_department_progress,
    submit_for_review,
)
from services.trial_export import build_trial_workbook
from services.trial_report import collect_department_records
from services.trials import purge_trials
from utils import sa_to_dict, strip_quotes, utcnow
from utils.code_generator import next_code, sequence_of

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trial", tags=["trial"])

methods_writers = require_departments(Dept.ADMIN, Dept.METHODS)
admin_only = require_roles(ROLE_ADMIN)

# ---------------------------
# Helpers
# ---------------------------
def trial_to_dict(t: TrialCard) -> dict:
    d = TrialOut.model_validate(t).model_dump()
    d["current_department"] = t.current_department.name if t.current_department else None
    return d


def _active_trials(db: Session):
    return (
        db.query(TrialCard)
        .options(joinedload(TrialCard.current_department))
        .filter(TrialCard.deleted_at.is_(None))
    )


def _report_row(t: TrialCard, r: Optional[TrialReport]) -> dict:
    d = trial_to_dict(t)
    d["report"] = None
    if r is not None:
        d["report"] = {
            "id": r.id,
            "file_name": r.file_name,
            "file_base64": r.file_base64,
            "created_at": r.created_at,
            "deleted_at": r.deleted_at,
            "deleted_by": r.deleted_by,
        }
    return d


def _reports_query(db: Session):
    return (
        db.query(TrialCard, TrialReport)
        .join(TrialReport, TrialReport.trial_id == TrialCard.trial_id)
        .options(joinedload(TrialCard.current_department))
        .filter(TrialCard.deleted_at.is_(None), TrialReport.deleted_at.is_(None))
    )


# ---------------------------
# Trial cards
# ---------------------------
@router.get("/id")
def next_trial_id(
    part_name: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    name = strip_quotes(part_name)
    if not name:
        raise HTTPException(400, "part_name is required")
    return {"trialId": next_code(db, TrialCard, "trial_id", name)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_trial(
    payload: TrialCreate,
    db: Session = Depends(get_db),
    user: User = Depends(methods_writers),
):
    trial_id = payload.trial_id.strip()
    if db.get(TrialCard, trial_id):
        raise HTTPException(409, f"Trial {trial_id} already exists")

    data = payload.model_dump(exclude={"trial_id", "status"})
    trial = TrialCard(
        trial_id=trial_id,
        status=payload.status or STATUS_CREATED,
        current_department_id=int(Dept.METHODS),
        **data,
    )
    if trial.trial_no is None:
        trial.trial_no = sequence_of(trial_id)
    db.add(trial)
    db.flush()

    record_audit(db, user, "Trial created", f"Trial {trial_id} created for part {trial.part_name}", trial_id)
    create_department_progress(db, trial, user)
    if user.role != ROLE_ADMIN:
        submit_for_review(db, trial, user, int(Dept.METHODS))

    mailer.commit_and_send(db)
    db.refresh(trial)
    logger.info("trial %s created by %s", trial_id, user.username)
    return {"success": True, "message": "Trial created successfully", "trial_id": trial_id, "data": trial_to_dict(trial)}


@router.get("")
def list_trials(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = _active_trials(db).order_by(TrialCard.created_at.desc(), TrialCard.trial_id).all()
    return [trial_to_dict(t) for t in rows]


@router.get("/trial_id")
def get_trial(
    trial_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tid = strip_quotes(trial_id)
    if not tid:
        raise HTTPException(400, "trial_id is required")
    rows = _active_trials(db).filter(TrialCard.trial_id == tid).all()
    return [trial_to_dict(t) for t in rows]


@router.get("/all-data")
def get_all_department_data(
    trial_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    trial = get_trial_or_404(db, strip_quotes(trial_id))
    return {
        "success": True,
        "data": {
            "trial_card": trial_to_dict(trial),
            **collect_department_records(db, trial.trial_id),
        },
    }


@router.get("/progressing")
def progressing_trials(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """In-progress trials the caller's department has not touched yet."""
    touched = exists().where(
        DepartmentProgress.trial_id == TrialCard.trial_id,
        DepartmentProgress.department_id == user.department_id,
    )
    rows = (
        _active_trials(db)
        .filter(TrialCard.status == STATUS_IN_PROGRESS, ~touched)
        .order_by(TrialCard.date_of_sampling.desc())
        .all()
    )
    return [trial_to_dict(t) for t in rows]


@router.get("/export")
def export_trials(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    content = build_trial_workbook(db)
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="trial_cards.xlsx"'},
    )


@router.put("/update", dependencies=[Depends(require_roles(ROLE_ADMIN, ROLE_HOD))])
def update_trial(
    payload: TrialUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(methods_writers),
):
    trial = get_trial_or_404(db, strip_quotes(payload.trial_id))

    if payload.is_edit:
        data = {
            k: v
            for k, v in payload.model_dump(exclude_unset=True, exclude={"trial_id", "is_edit"}).items()
            if v is not None
        }
        for k, v in data.items():
            setattr(trial, k, v)
        db.flush()
        record_audit(db, user, "Trial updated", f"Trial {trial.trial_id} updated by {user.username}", trial.trial_id)

        recipients = [
            email
            for (email,) in db.query(User.email).filter(
                User.department_id.in_([int(d) for d in TRIAL_EDIT_NOTIFY_DEPARTMENTS]),
                User.is_active.is_(True),
                User.email.isnot(None),
            )
        ]
        if recipients:
            mailer.queue_mail(db, mailer.send_trial_updated_mail, recipients, trial=trial, updated_by=user.username)

    if user.role != ROLE_ADMIN:
        approve_department(db, trial, user, int(Dept.METHODS))

    mailer.commit_and_send(db)
    db.refresh(trial)
    return {"success": True, "message": "Trial updated successfully", "data": trial_to_dict(trial)}


# ---------------------------
# Recycle bin (trial cards)
# ---------------------------
@router.delete("")
def soft_delete_trials(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    if not ids:
        raise HTTPException(400, "trial_id is required")
    rows = _active_trials(db).filter(TrialCard.trial_id.in_(ids)).all()
    if not rows:
        raise HTTPException(404, "No matching trial cards")
    now = utcnow()
    for t in rows:
        t.deleted_at = now
        t.deleted_by = user.username
        record_audit(db, user, "Trial deleted", f"Trial {t.trial_id} moved to recycle bin", t.trial_id)
    db.commit()
    return {"success": True, "message": f"{len(rows)} trial card(s) deleted"}


@router.get("/deleted")
def deleted_trials(db: Session = Depends(get_db), user: User = Depends(admin_only)):
    rows = (
        db.query(TrialCard)
        .filter(TrialCard.deleted_at.isnot(None))
        .order_by(TrialCard.deleted_at.desc())
        .all()
    )
    return [trial_to_dict(t) for t in rows]


@router.post("/restore")
def restore_trials(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    rows = db.query(TrialCard).filter(TrialCard.trial_id.in_(ids), TrialCard.deleted_at.isnot(None)).all()
    if not rows:
        raise HTTPException(404, "No deleted trial cards found")
    for t in rows:
        t.deleted_at = None
        t.deleted_by = None
        record_audit(db, user, "Trial restored", f"Trial {t.trial_id} restored", t.trial_id)
    db.commit()
    return {"success": True, "message": f"{len(rows)} trial card(s) restored"}


@router.delete("/permanent")
def permanently_delete_trials(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    deletable = [
        t for (t,) in db.query(TrialCard.trial_id)
        .filter(TrialCard.trial_id.in_(ids), TrialCard.deleted_at.isnot(None))
        .all()
    ]
    if not deletable:
        raise HTTPException(404, "Only trial cards in the recycle bin can be permanently deleted")
    for tid in deletable:
        record_audit(db, user, "Trial permanently deleted", f"Trial {tid} permanently deleted", tid)
    purge_trials(db, deletable)
    db.commit()
    return {"success": True, "message": f"{len(deletable)} trial card(s) permanently deleted"}


# ---------------------------
# Reports
# ---------------------------
@router.get("/trial-reports")
def trial_reports(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = _reports_query(db).order_by(TrialCard.date_of_sampling.desc()).all()
    return [_report_row(t, r) for t, r in rows]


@router.get("/recent-reports")
def recent_reports(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = _reports_query(db).order_by(TrialCard.date_of_sampling.desc(), TrialReport.id.desc()).limit(10).all()
    return [_report_row(t, r) for t, r in rows]


@router.get("/consolidated-reports")
def consolidated_reports(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.query(ConsolidatedReport).order_by(ConsolidatedReport.updated_at.desc()).all()
    return [sa_to_dict(r) for r in rows]


@router.delete("/delete-reports")
def soft_delete_reports(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    rows = db.query(TrialReport).filter(TrialReport.trial_id.in_(ids), TrialReport.deleted_at.is_(None)).all()
    if not rows:
        raise HTTPException(404, "No matching reports")
    now = utcnow()
    for r in rows:
        r.deleted_at = now
        r.deleted_by = user.username
        record_audit(db, user, "Trial report deleted", f"Report of {r.trial_id} moved to recycle bin", r.trial_id)
    db.commit()
    return {"success": True, "message": f"{len(rows)} report(s) deleted"}


@router.get("/deleted-reports")
def deleted_reports(db: Session = Depends(get_db), user: User = Depends(admin_only)):
    rows = (
        db.query(TrialCard, TrialReport)
        .join(TrialReport, TrialReport.trial_id == TrialCard.trial_id)
        .filter(TrialReport.deleted_at.isnot(None))
        .order_by(TrialReport.deleted_at.desc())
        .all()
    )
    return [_report_row(t, r) for t, r in rows]


@router.post("/restore-report")
def restore_reports(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    rows = db.query(TrialReport).filter(TrialReport.trial_id.in_(ids), TrialReport.deleted_at.isnot(None)).all()
    if not rows:
        raise HTTPException(404, "No deleted reports found")
    for r in rows:
        r.deleted_at = None
        r.deleted_by = None
        record_audit(db, user, "Trial report restored", f"Report of {r.trial_id} restored", r.trial_id)
    db.commit()
    return {"success": True, "message": f"{len(rows)} report(s) restored"}


@router.delete("/permanent-report")
def permanently_delete_reports(
    payload: TrialIdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
):
    ids = payload.as_list()
    rows = db.query(TrialReport).filter(TrialReport.trial_id.in_(ids), TrialReport.deleted_at.isnot(None)).all()
    if not rows:
        raise HTTPException(404, "Only reports in the recycle bin can be permanently deleted")
    for r in rows:
        record_audit(db, user, "Trial report permanently deleted", f"Report of {r.trial_id} removed", r.trial_id)
        db.delete(r)
    db.commit()
    return {"success": True, "message": f"{len(rows)} report(s) permanently deleted"}

