# routers/v1/visual_inspection.py
from fastapi import HTTPException
from sqlalchemy.orm import Session

from constants import Dept
from generic_router import make_inspection_router
from models import TrialCard, VisualInspection
from schemas import VisualInspectionCreate, VisualInspectionUpdate
from utils.calculations import rejected_quantity, rejection_percentage

INSPECTED = "Inspected Quantity"
ACCEPTED = "Accepted Quantity"
REJECTED = "Rejected Quantity"
REJECTION_PCT = "Rejection Percentage"


def _cavity_label(row: dict) -> str:
    return row.get("Cavity Number") or row.get("Cavity number") or "?"


def derive_cavity_row(row: dict) -> dict:
    """
    Fill rejected quantity / rejection % of one cavity row.
    With an accepted quantity the rejected quantity is derived from it;
    otherwise the entered rejected quantity is used. The percentage is
    always recomputed.
    """
    out = dict(row)
    try:
        rejected = rejected_quantity(out.get(INSPECTED), out.get(ACCEPTED))
        if rejected is None:
            rejected = out.get(REJECTED)
        else:
            out[REJECTED] = rejected
        pct = rejection_percentage(out.get(INSPECTED), rejected)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Cavity {_cavity_label(out)}: {e}")
    if rejected is not None or REJECTION_PCT in out:
        out[REJECTION_PCT] = pct if pct is not None else ""
    return out


def apply_rejections(db: Session, trial: TrialCard, data: dict, existing) -> dict:
    if data.get("inspections"):
        data["inspections"] = [derive_cavity_row(r) for r in data["inspections"]]
    return data


# fettling / visual users may update their own record (no role gate)
router = make_inspection_router(
    VisualInspection,
    "visual-inspection",
    department_id=Dept.VISUAL_INSPECTION,
    title="Visual inspection",
    create_schema=VisualInspectionCreate,
    update_schema=VisualInspectionUpdate,
    before_save=apply_rejections,
)
