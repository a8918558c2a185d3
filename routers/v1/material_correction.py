# routers/v1/material_correction.py
from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import MaterialCorrection
from schemas import MaterialCorrectionCreate, MaterialCorrectionUpdate

router = make_inspection_router(
    MaterialCorrection,
    "material-correction",
    department_id=Dept.QC,
    title="Material correction",
    create_schema=MaterialCorrectionCreate,
    update_schema=MaterialCorrectionUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
)
