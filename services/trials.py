# services/trials.py
from typing import Iterable

from sqlalchemy.orm import Session

from models import (
    DEPARTMENT_RECORD_MODELS,
    DepartmentProgress,
    Document,
    TrialCard,
    TrialReport,
)

# everything keyed by trial_id, deleted before the card itself
_CHILD_MODELS = DEPARTMENT_RECORD_MODELS + (DepartmentProgress, Document, TrialReport)


def purge_trials(db: Session, trial_ids: Iterable[str]) -> int:
    """Hard delete trial cards and every row that belongs to them. Returns cards deleted."""
    ids = list(trial_ids)
    if not ids:
        return 0
    for Model in _CHILD_MODELS:
        db.query(Model).filter(Model.trial_id.in_(ids)).delete(synchronize_session=False)
    n = db.query(TrialCard).filter(TrialCard.trial_id.in_(ids)).delete(synchronize_session=False)
    db.expire_all()
    return n
