# constants.py
from enum import IntEnum


class Dept(IntEnum):
    ADMIN = 1
    METHODS = 2
    QC = 3
    SAND_PLANT = 4
    VISUAL_INSPECTION = 5
    MOULDING = 6
    MELTING = 7
    MACHINE_SHOP = 8
    METALLURGICAL_INSPECTION = 9
    QA = 10


DEPARTMENT_NAMES = {
    Dept.ADMIN: "ADMIN",
    Dept.METHODS: "METHODS",
    Dept.QC: "QC",
    Dept.SAND_PLANT: "SAND PLANT",
    Dept.VISUAL_INSPECTION: "FETTLING & VISUAL INSPECTION",
    Dept.MOULDING: "MOULDING",
    Dept.MELTING: "MELTING",
    Dept.MACHINE_SHOP: "MACHINE SHOP",
    Dept.METALLURGICAL_INSPECTION: "METALLURGICAL INSPECTION",
    Dept.QA: "QA",
}

# sequence_no -> department
DEFAULT_FLOW = [
    Dept.METHODS,
    Dept.QC,
    Dept.SAND_PLANT,
    Dept.MOULDING,
    Dept.MELTING,
    Dept.VISUAL_INSPECTION,
    Dept.QA,
    Dept.METALLURGICAL_INSPECTION,
    Dept.MACHINE_SHOP,
]

# ===== Roles =====
ROLE_USER = "User"
ROLE_HOD = "HOD"
ROLE_ADMIN = "Admin"
ROLES = (ROLE_USER, ROLE_HOD, ROLE_ADMIN)

# ===== Trial =====
STATUS_CREATED = "CREATED"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_CLOSED = "CLOSED"
TRIAL_STATUSES = (STATUS_CREATED, STATUS_IN_PROGRESS, STATUS_CLOSED)

TRIAL_TYPE_NPD = "INHOUSE MACHINING(NPD)"
TRIAL_TYPE_REGULAR = "INHOUSE MACHINING(REGULAR)"
TRIAL_TYPE_CUSTOMER_END = "MACHINING - CUSTOMER END"
TRIAL_TYPES = (TRIAL_TYPE_NPD, TRIAL_TYPE_REGULAR, TRIAL_TYPE_CUSTOMER_END)

MACHINE_SHOP_USER_TYPES = ("N/A", "NPD", "REGULAR")

# ===== Department progress =====
APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"

# departments mailed when METHODS edits a trial card
TRIAL_EDIT_NOTIFY_DEPARTMENTS = (Dept.SAND_PLANT, Dept.MOULDING, Dept.MELTING)

OTP_LENGTH = 6
EMAIL_OTP_TTL_MINUTES = 5
RESET_OTP_TTL_MINUTES = 10
OTP_MAX_ATTEMPTS = 5
PROFILE_PHOTO_MAX_CHARS = 5 * 1024 * 1024
