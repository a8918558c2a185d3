# routers/v1/moulding_correction.py
from constants import Dept
from generic_router import make_inspection_router
from models import MouldCorrection
from schemas import MouldCorrectionCreate, MouldCorrectionUpdate

# moulding users may update their own record (no role gate)
router = make_inspection_router(
    MouldCorrection,
    "moulding-correction",
    department_id=Dept.MOULDING,
    title="Mould correction",
    create_schema=MouldCorrectionCreate,
    update_schema=MouldCorrectionUpdate,
)
