# routers/v1/sand_properties.py
from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import SandProperties
from schemas import SandPropertiesCreate, SandPropertiesUpdate

router = make_inspection_router(
    SandProperties,
    "sand-properties",
    department_id=Dept.SAND_PLANT,
    title="Sand properties",
    create_schema=SandPropertiesCreate,
    update_schema=SandPropertiesUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
)
