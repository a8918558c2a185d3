# routers/v1/metallurgical_inspection.py
from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import MetallurgicalInspection
from schemas import MetallurgicalInspectionCreate, MetallurgicalInspectionUpdate

router = make_inspection_router(
    MetallurgicalInspection,
    "metallurgical-inspection",
    department_id=Dept.METALLURGICAL_INSPECTION,
    title="Metallurgical inspection",
    create_schema=MetallurgicalInspectionCreate,
    update_schema=MetallurgicalInspectionUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
)
