# routers/v1/pouring_details.py
from sqlalchemy.orm import Session

from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import PouringDetails, TrialCard
from schemas import PouringDetailsCreate, PouringDetailsUpdate


def sync_actual_moulds(db: Session, trial: TrialCard, record: PouringDetails) -> None:
    """Moulds actually poured become the trial card's actual_moulds."""
    if record.no_of_mould_poured is not None:
        trial.actual_moulds = record.no_of_mould_poured
        db.flush()


router = make_inspection_router(
    PouringDetails,
    "pouring-details",
    department_id=Dept.MELTING,
    title="Pouring details",
    create_schema=PouringDetailsCreate,
    update_schema=PouringDetailsUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
    after_save=sync_actual_moulds,
)
