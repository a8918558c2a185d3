# routers/v1/dimensional_inspection.py
from fastapi import HTTPException
from sqlalchemy.orm import Session

from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import DimensionalInspection, TrialCard
from schemas import DimensionalInspectionCreate, DimensionalInspectionUpdate
from utils.calculations import calculate_yield, yield_exceeds_limit


def apply_yield(db: Session, trial: TrialCard, data: dict, existing) -> dict:
    """yields is always derived from the weights when all three are known."""
    def pick(key):
        if data.get(key) is not None:
            return data[key]
        return getattr(existing, key, None) if existing is not None else None

    casting, cavities, bunch = pick("casting_weight"), pick("no_of_cavities"), pick("bunch_weight")
    if yield_exceeds_limit(casting, cavities, bunch):
        raise HTTPException(
            status_code=400,
            detail="Yield exceeds 100%: total casting weight is greater than bunch weight",
        )
    computed = calculate_yield(casting, cavities, bunch)
    if computed is not None:
        data["yields"] = computed
    return data


router = make_inspection_router(
    DimensionalInspection,
    "dimensional-inspection",
    department_id=Dept.QA,
    title="Dimensional inspection",
    create_schema=DimensionalInspectionCreate,
    update_schema=DimensionalInspectionUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
    before_save=apply_yield,
)
