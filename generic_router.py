from typing import Callable, Iterable, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from constants import Dept
from database import get_db
from deps.auth import get_current_user
from deps.authz import require_departments, require_roles
from models import TrialCard, User
from services.audit import record_audit
from services.department_progress import advance_after_save
from services.mailer import commit_and_send
from utils import sa_to_dict, sa_update_from_dict, strip_quotes


def get_trial_or_404(db: Session, trial_id: Optional[str], include_deleted: bool = False) -> TrialCard:
    if not trial_id:
        raise HTTPException(status_code=400, detail="trial_id is required")
    trial = db.get(TrialCard, trial_id)
    if not trial or (trial.deleted_at is not None and not include_deleted):
        raise HTTPException(status_code=404, detail=f"Trial {trial_id} not found")
    return trial


def make_inspection_router(
    Model,
    prefix: str,
    *,
    department_id: int,
    title: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    update_roles: Optional[Iterable[str]] = None,
    extra_departments: Iterable[int] = (),
    before_save: Optional[Callable[[Session, TrialCard, dict, object], dict]] = None,
    after_save: Optional[Callable[[Session, TrialCard, object], None]] = None,
):
    """
    Router for one department's per-trial record (one row per trial):
    - GET  /{prefix}                    : list
    - GET  /{prefix}/trial_id?trial_id= : records of one trial
    - POST /{prefix}                    : create + workflow step
    - PUT  /{prefix}                    : partial update + workflow step

    before_save(db, trial, data, existing) may adjust `data` or raise HTTPException.
    after_save(db, trial, obj) runs after the row is written (same transaction).
    """
    department_id = int(department_id)
    router = APIRouter(prefix=f"/{prefix}", tags=[prefix])
    writers = require_departments(Dept.ADMIN, department_id, *extra_departments)
    put_deps = [Depends(require_roles(*update_roles))] if update_roles else []

    # List
    @router.get("")
    def list_records(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
        rows = db.scalars(select(Model).order_by(Model.id.desc())).all()
        return [sa_to_dict(r) for r in rows]

    # By trial
    @router.get("/trial_id")
    def records_by_trial(
        trial_id: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ):
        tid = strip_quotes(trial_id)
        if not tid:
            raise HTTPException(status_code=400, detail="trial_id is required")
        rows = db.scalars(select(Model).where(Model.trial_id == tid)).all()
        return [sa_to_dict(r) for r in rows]

    # Create
    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_record(
        payload: create_schema,
        db: Session = Depends(get_db),
        user: User = Depends(writers),
    ):
        data = payload.model_dump(exclude={"is_draft"})
        trial_id = strip_quotes(data.pop("trial_id"))
        trial = get_trial_or_404(db, trial_id)

        exists = db.scalars(select(Model).where(Model.trial_id == trial_id)).first()
        if exists:
            raise HTTPException(status_code=409, detail=f"{title} already exists for trial {trial_id}")

        if before_save:
            data = before_save(db, trial, data, None)

        obj = Model(trial_id=trial_id)
        sa_update_from_dict(obj, data)
        db.add(obj)
        db.flush()
        if after_save:
            after_save(db, trial, obj)

        record_audit(db, user, f"{title} created", f"{title} created for trial {trial_id} by {user.username}", trial_id)
        advance_after_save(db, trial, user, department_id, is_draft=payload.is_draft, created=True)
        commit_and_send(db)
        db.refresh(obj)
        return {"success": True, "message": f"{title} created successfully", "data": sa_to_dict(obj)}

    # Update
    @router.put("", dependencies=put_deps)
    def update_record(
        payload: update_schema,
        db: Session = Depends(get_db),
        user: User = Depends(writers),
    ):
        trial_id = strip_quotes(payload.trial_id)
        trial = get_trial_or_404(db, trial_id)
        obj = db.scalars(select(Model).where(Model.trial_id == trial_id)).first()
        if not obj:
            raise HTTPException(status_code=404, detail=f"{title} not found for trial {trial_id}")

        if payload.is_edit:
            # COALESCE semantics: omitted or null fields keep their stored value
            data = {
                k: v
                for k, v in payload.model_dump(exclude_unset=True, exclude={"trial_id", "is_edit", "is_draft"}).items()
                if v is not None
            }
            if before_save:
                data = before_save(db, trial, data, obj)
            sa_update_from_dict(obj, data)
            db.flush()
            if after_save:
                after_save(db, trial, obj)
            record_audit(db, user, f"{title} updated", f"{title} updated for trial {trial_id} by {user.username}", trial_id)

        advance_after_save(db, trial, user, department_id, is_draft=payload.is_draft, created=False)
        commit_and_send(db)
        db.refresh(obj)
        return {"success": True, "message": f"{title} updated successfully", "data": sa_to_dict(obj)}

    return router
