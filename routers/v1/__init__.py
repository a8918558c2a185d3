# routers/v1/__init__.py
from fastapi import APIRouter

from . import (
    login, users, forgot_password, departments, master_list, trials,
    department_progress, documents, stats,

    ############ department inspection forms ######################
    material_correction, sand_properties, moulding_correction, pouring_details,
    visual_inspection, machine_shop, metallurgical_inspection, dimensional_inspection,
)

api_v1 = APIRouter()

# auth / accounts
api_v1.include_router(login.router)
api_v1.include_router(forgot_password.router)
api_v1.include_router(users.router)
api_v1.include_router(departments.router)

# trials
api_v1.include_router(master_list.router)
api_v1.include_router(trials.router)
api_v1.include_router(department_progress.router)
api_v1.include_router(documents.router)
api_v1.include_router(stats.router)

# one router per department form, built by generic_router.make_inspection_router
api_v1.include_router(material_correction.router)
api_v1.include_router(sand_properties.router)
api_v1.include_router(moulding_correction.router)
api_v1.include_router(pouring_details.router)
api_v1.include_router(visual_inspection.router)
api_v1.include_router(machine_shop.router)
api_v1.include_router(metallurgical_inspection.router)
api_v1.include_router(dimensional_inspection.router)
