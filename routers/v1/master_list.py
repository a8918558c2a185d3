# routers/v1/master_list.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from constants import ROLE_ADMIN
from database import get_db
from deps.auth import get_current_user
from deps.authz import require_roles
from models import MasterCard, ToolingPatternData, TrialCard, User
from schemas import IdsIn, MasterCardIn, ToggleStatusIn
from services.audit import record_audit
from services.trials import purge_trials
from utils import sa_to_dict, sa_update_from_dict, strip_quotes
from utils.spec_parser import parse_master_specs

router = APIRouter(prefix="/master-list", tags=["master-list"])

REQUIRED_FIELDS = (
    "pattern_code", "part_name", "material_grade", "chemical_composition",
    "micro_structure", "tensile", "impact", "hardness", "xray",
)
CARD_FIELDS = REQUIRED_FIELDS + ("mpi", "is_active")


# ---------------------------
# Helpers
# ---------------------------
def card_to_dict(card: MasterCard) -> dict:
    d = sa_to_dict(card)
    d["tooling"] = sa_to_dict(card.tooling, exclude=("id", "master_card_id")) if card.tooling else None
    return d


def _get_card_or_404(db: Session, card_id: int) -> MasterCard:
    card = db.get(MasterCard, card_id)
    if not card:
        raise HTTPException(404, "Master card not found")
    return card


def _blank(v) -> bool:
    return v is None or (isinstance(v, str) and not v.strip()) or v == {}


def _upsert_tooling(card: MasterCard, tooling: Optional[dict]) -> None:
    if tooling is None:
        return
    if card.tooling is None:
        card.tooling = ToolingPatternData()
    sa_update_from_dict(card.tooling, tooling)


# ---------------------------
# Read
# ---------------------------
@router.get("")
def list_master_cards(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = (
        db.query(MasterCard)
        .options(joinedload(MasterCard.tooling))
        .order_by(MasterCard.id.desc())
        .all()
    )
    return [card_to_dict(c) for c in rows]


@router.get("/search")
def search_master_card(
    pattern_code: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    code = strip_quotes(pattern_code)
    if not code:
        raise HTTPException(400, "pattern_code is required")
    card = db.query(MasterCard).filter(MasterCard.pattern_code == code).first()
    return card_to_dict(card) if card else None


@router.get("/specs")
def master_card_specs(
    pattern_code: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Specification columns read into structured values for the sample card."""
    code = strip_quotes(pattern_code)
    if not code:
        raise HTTPException(400, "pattern_code is required")
    card = db.query(MasterCard).filter(MasterCard.pattern_code == code).first()
    if not card:
        raise HTTPException(404, "Master card not found")
    return {"pattern_code": card.pattern_code, "part_name": card.part_name, **parse_master_specs(card)}


# ---------------------------
# Write
# ---------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def create_master_card(
    payload: MasterCardIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = payload.model_dump(exclude={"tooling"})
    missing = [f for f in REQUIRED_FIELDS if _blank(data.get(f))]
    if missing:
        raise HTTPException(400, f"Missing required fields: {', '.join(missing)}")

    data["pattern_code"] = data["pattern_code"].strip()
    if db.query(MasterCard).filter(MasterCard.pattern_code == data["pattern_code"]).first():
        raise HTTPException(409, f"Pattern code {data['pattern_code']} already exists")

    card = MasterCard()
    sa_update_from_dict(card, data, allow_fields=CARD_FIELDS)
    if card.is_active is None:
        card.is_active = True
    _upsert_tooling(card, payload.tooling.model_dump() if payload.tooling else None)
    db.add(card)
    db.flush()
    record_audit(db, user, "Master card created", f"Pattern {card.pattern_code} added")
    db.commit()
    db.refresh(card)
    return {"success": True, "message": "Master card created successfully", "data": card_to_dict(card)}


@router.put("/toggle-status")
def toggle_master_card_status(
    payload: ToggleStatusIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    card = _get_card_or_404(db, payload.id)
    card.is_active = payload.is_active
    record_audit(db, user, "Master card status changed", f"Pattern {card.pattern_code} active={payload.is_active}")
    db.commit()
    return {"success": True, "message": "Status updated successfully"}


@router.put("/{card_id}")
def update_master_card(
    card_id: int,
    payload: MasterCardIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    card = _get_card_or_404(db, card_id)
    if _blank(payload.pattern_code) or _blank(payload.part_name):
        raise HTTPException(400, "pattern_code and part_name are required")

    new_code = payload.pattern_code.strip()
    if new_code != card.pattern_code:
        clash = db.query(MasterCard).filter(MasterCard.pattern_code == new_code, MasterCard.id != card.id).first()
        if clash:
            raise HTTPException(409, f"Pattern code {new_code} already exists")

    data = payload.model_dump(exclude_unset=True, exclude={"tooling"})
    data["pattern_code"] = new_code
    sa_update_from_dict(card, data, allow_fields=CARD_FIELDS)
    if payload.tooling is not None:
        _upsert_tooling(card, payload.tooling.model_dump(exclude_unset=True))

    record_audit(db, user, "Master card updated", f"Pattern {card.pattern_code} updated")
    db.commit()
    db.refresh(card)
    return {"success": True, "message": "Master card updated successfully", "data": card_to_dict(card)}


@router.delete("/bulk")
def bulk_delete_master_cards(
    payload: IdsIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(ROLE_ADMIN)),
):
    if not payload.ids:
        raise HTTPException(400, "ids must be a non-empty list")

    cards = db.query(MasterCard).filter(MasterCard.id.in_(payload.ids)).all()
    if not cards:
        raise HTTPException(404, "No master cards found")
    codes = [c.pattern_code for c in cards]

    # trial cards of those patterns go with them
    trial_ids = [t for (t,) in db.query(TrialCard.trial_id).filter(TrialCard.pattern_code.in_(codes)).all()]
    purge_trials(db, trial_ids)

    for c in cards:
        db.delete(c)
    record_audit(
        db, user, "Master cards deleted",
        f"{len(cards)} master card(s) deleted: {', '.join(codes)}; {len(trial_ids)} trial card(s) removed",
    )
    db.commit()
    return {"success": True, "message": f"{len(cards)} master card(s) deleted", "deleted_trials": len(trial_ids)}
