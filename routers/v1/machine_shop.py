# routers/v1/machine_shop.py
from constants import ROLE_ADMIN, ROLE_HOD, Dept
from generic_router import make_inspection_router
from models import MachineShop
from schemas import MachineShopCreate, MachineShopUpdate

# customer-end machining is checked by METALLURGICAL INSPECTION on this form
router = make_inspection_router(
    MachineShop,
    "machine-shop",
    department_id=Dept.MACHINE_SHOP,
    extra_departments=(Dept.METALLURGICAL_INSPECTION,),
    title="Machine shop inspection",
    create_schema=MachineShopCreate,
    update_schema=MachineShopUpdate,
    update_roles=(ROLE_ADMIN, ROLE_HOD),
)
