from __future__ import annotations

from typing import Any, List, Literal, Optional, Union
import datetime as dt
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# =========================
# ===== Base (Pydantic v2)
# =========================
class APIBase(BaseModel):
    """
    Base for response schemas:
    - from_attributes=True: build straight from ORM objects (SQLAlchemy)
    - json_encoders: Decimal -> float for JSON output
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={Decimal: float}
    )


class CamelIn(BaseModel):
    """Request bodies that accept camelCase keys (the web client) or snake_case."""
    model_config = ConfigDict(populate_by_name=True)


RoleName = Literal["User", "HOD", "Admin"]
MachineShopUserType = Literal["N/A", "NPD", "REGULAR"]
TrialType = Literal[
    "INHOUSE MACHINING(NPD)",
    "INHOUSE MACHINING(REGULAR)",
    "MACHINING - CUSTOMER END",
]
TrialStatus = Literal["CREATED", "IN_PROGRESS", "CLOSED"]

# =========================================
# ================= Auth ==================
# =========================================
class LoginIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenIn(CamelIn):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


# =========================================
# ================= Users =================
# =========================================
class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    full_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    password: str = Field(min_length=6)
    department_id: int
    role: RoleName = "User"
    machine_shop_user_type: MachineShopUserType = "N/A"
    is_active: bool = True
    remarks: Optional[str] = None

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        return v.strip()


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    full_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    department_id: Optional[int] = None
    role: Optional[RoleName] = None
    machine_shop_user_type: Optional[MachineShopUserType] = None
    is_active: Optional[bool] = None
    remarks: Optional[str] = None


class UserOut(APIBase):
    user_id: int = Field(validation_alias="id")
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    role: str
    machine_shop_user_type: str
    is_active: bool
    email_verified: bool
    needs_password_change: bool
    remarks: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ChangeStatusIn(CamelIn):
    user_id: int = Field(alias="userId")
    # plain Any so a non-bool can be rejected with the API's own message
    status: Any = None


class ChangePasswordIn(CamelIn):
    new_password: str = Field(alias="newPassword")
    old_password: Optional[str] = Field(default=None, alias="oldPassword")


class UpdateUsernameIn(BaseModel):
    username: Optional[str] = None


class SendOtpIn(BaseModel):
    email: EmailStr


class VerifyOtpIn(BaseModel):
    email: EmailStr
    otp: str


class UploadPhotoIn(CamelIn):
    photo_base64: Any = Field(default=None, alias="photoBase64")


class RequestResetIn(BaseModel):
    username: str
    email: EmailStr


class ResetPasswordIn(CamelIn):
    username: str
    otp: str
    new_password: str = Field(alias="newPassword", min_length=6)


# =========================================
# ============== Departments ==============
# =========================================
class DepartmentOut(APIBase):
    department_id: int = Field(validation_alias="id")
    department_name: str = Field(validation_alias="name")


# =========================================
# ============== Master list ==============
# =========================================
class ToolingIn(BaseModel):
    number_of_cavity: Optional[str] = None
    cavity_identification: Optional[str] = None
    pattern_material: Optional[str] = None
    core_weight: Optional[str] = None
    core_mask_thickness: Optional[str] = None
    estimated_casting_weight: Optional[str] = None
    estimated_bunch_weight: Optional[str] = None
    sp_pattern_plate_thickness: Optional[str] = None
    sp_pattern_plate_weight: Optional[str] = None
    sp_core_mask_weight: Optional[str] = None
    sp_crush_pin_height: Optional[str] = None
    sp_calculated_yield: Optional[str] = None
    pp_pattern_plate_thickness: Optional[str] = None
    pp_pattern_plate_weight: Optional[str] = None
    pp_core_mask_weight: Optional[str] = None
    pp_crush_pin_height: Optional[str] = None
    pp_calculated_yield: Optional[str] = None
    yield_label: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _numbers_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class MasterCardIn(BaseModel):
    """Required fields are checked by the route (400 "Missing required fields")."""
    pattern_code: Optional[str] = None
    part_name: Optional[str] = None
    material_grade: Optional[str] = None
    chemical_composition: Optional[Union[dict, str]] = None
    micro_structure: Optional[str] = None
    tensile: Optional[str] = None
    impact: Optional[str] = None
    hardness: Optional[str] = None
    xray: Optional[str] = None
    mpi: Optional[str] = None
    is_active: Optional[bool] = None
    tooling: Optional[ToolingIn] = None


class ToggleStatusIn(BaseModel):
    id: int
    is_active: bool


class IdsIn(BaseModel):
    ids: List[int] = Field(default_factory=list)


# =========================================
# ============== Trial cards ==============
# =========================================
class TrialCreate(BaseModel):
    trial_id: str = Field(min_length=1, max_length=100)
    trial_no: Optional[int] = None
    part_name: str = Field(min_length=1, max_length=100)
    pattern_code: str = Field(min_length=1, max_length=150)
    trial_type: TrialType = "INHOUSE MACHINING(NPD)"
    material_grade: str = Field(min_length=1, max_length=50)
    initiated_by: str = Field(min_length=1, max_length=50)
    date_of_sampling: date
    plan_moulds: int = Field(gt=0)
    actual_moulds: Optional[int] = Field(default=None, ge=0)
    reason_for_sampling: str = Field(min_length=1)
    status: Optional[TrialStatus] = None
    disa: str = Field(min_length=1, max_length=50)
    sample_traceability: str = Field(min_length=1, max_length=50)
    mould_correction: Optional[Any] = None
    tooling_modification: Optional[str] = None
    remarks: Optional[str] = None


class TrialUpdate(BaseModel):
    trial_id: Optional[str] = None
    part_name: Optional[str] = Field(default=None, max_length=100)
    pattern_code: Optional[str] = Field(default=None, max_length=150)
    trial_type: Optional[TrialType] = None
    material_grade: Optional[str] = Field(default=None, max_length=50)
    initiated_by: Optional[str] = Field(default=None, max_length=50)
    date_of_sampling: Optional[date] = None
    plan_moulds: Optional[int] = Field(default=None, gt=0)
    actual_moulds: Optional[int] = Field(default=None, ge=0)
    reason_for_sampling: Optional[str] = None
    disa: Optional[str] = Field(default=None, max_length=50)
    sample_traceability: Optional[str] = Field(default=None, max_length=50)
    mould_correction: Optional[Any] = None
    tooling_modification: Optional[str] = None
    remarks: Optional[str] = None
    is_edit: bool = True


class TrialIdsIn(BaseModel):
    trial_id: Union[str, List[str]]

    def as_list(self) -> List[str]:
        ids = [self.trial_id] if isinstance(self.trial_id, str) else list(self.trial_id)
        return [i.strip() for i in ids if i and i.strip()]


class TrialOut(APIBase):
    trial_id: str
    trial_no: Optional[int] = None
    part_name: str
    pattern_code: str
    trial_type: str
    material_grade: str
    initiated_by: str
    date_of_sampling: date
    plan_moulds: int
    actual_moulds: Optional[int] = None
    reason_for_sampling: str
    status: str
    current_department_id: Optional[int] = None
    disa: str
    sample_traceability: str
    mould_correction: Optional[Any] = None
    tooling_modification: Optional[str] = None
    remarks: Optional[str] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None
    created_at: Optional[datetime] = None


# =========================================
# ========== Department progress ==========
# =========================================
class ToggleApprovalIn(BaseModel):
    trial_id: str
    department_id: int


# =========================================
# ======== Department inspections =========
# =========================================
class _RecordCreate(BaseModel):
    trial_id: str = Field(min_length=1)
    is_draft: bool = False


class _RecordUpdate(BaseModel):
    trial_id: Optional[str] = None
    is_edit: bool = True
    is_draft: bool = False


# ---- material correction (QC) ----
class MaterialCorrectionCreate(_RecordCreate):
    chemical_composition: Optional[Any] = None
    process_parameters: Optional[Any] = None
    remarks: Optional[str] = None


class MaterialCorrectionUpdate(_RecordUpdate):
    chemical_composition: Optional[Any] = None
    process_parameters: Optional[Any] = None
    remarks: Optional[str] = None


# ---- sand properties ----
class SandPropertiesCreate(_RecordCreate):
    date: dt.date
    t_clay: Optional[float] = Field(default=None, gt=0)
    a_clay: Optional[float] = Field(default=None, gt=0)
    vcm: Optional[float] = Field(default=None, gt=0)
    loi: Optional[float] = Field(default=None, gt=0)
    afs: Optional[float] = Field(default=None, gt=0)
    gcs: Optional[float] = Field(default=None, gt=0)
    moi: Optional[float] = Field(default=None, gt=0)
    compactability: Optional[float] = Field(default=None, gt=0)
    permeability: Optional[float] = Field(default=None, gt=0)
    remarks: Optional[str] = None


class SandPropertiesUpdate(_RecordUpdate):
    date: Optional[dt.date] = None
    t_clay: Optional[float] = Field(default=None, gt=0)
    a_clay: Optional[float] = Field(default=None, gt=0)
    vcm: Optional[float] = Field(default=None, gt=0)
    loi: Optional[float] = Field(default=None, gt=0)
    afs: Optional[float] = Field(default=None, gt=0)
    gcs: Optional[float] = Field(default=None, gt=0)
    moi: Optional[float] = Field(default=None, gt=0)
    compactability: Optional[float] = Field(default=None, gt=0)
    permeability: Optional[float] = Field(default=None, gt=0)
    remarks: Optional[str] = None


# ---- visual inspection ----
class VisualInspectionCreate(_RecordCreate):
    inspections: Optional[List[dict]] = None
    visual_ok: bool
    remarks: Optional[str] = None
    ndt_inspection: Optional[Any] = None
    ndt_inspection_ok: Optional[bool] = None
    ndt_inspection_remarks: Optional[str] = None


class VisualInspectionUpdate(_RecordUpdate):
    inspections: Optional[List[dict]] = None
    visual_ok: Optional[bool] = None
    remarks: Optional[str] = None
    ndt_inspection: Optional[Any] = None
    ndt_inspection_ok: Optional[bool] = None
    ndt_inspection_remarks: Optional[str] = None


# ---- mould correction ----
class MouldCorrectionCreate(_RecordCreate):
    mould_thickness: Optional[str] = None
    compressability: Optional[str] = None
    squeeze_pressure: Optional[str] = None
    mould_hardness: Optional[str] = None
    remarks: Optional[str] = None
    date: dt.date


class MouldCorrectionUpdate(_RecordUpdate):
    mould_thickness: Optional[str] = None
    compressability: Optional[str] = None
    squeeze_pressure: Optional[str] = None
    mould_hardness: Optional[str] = None
    remarks: Optional[str] = None
    date: Optional[dt.date] = None


# ---- pouring details ----
class PouringDetailsCreate(_RecordCreate):
    pour_date: date
    heat_code: Optional[str] = Field(default=None, max_length=50)
    composition: Optional[Any] = None
    no_of_mould_poured: Optional[int] = Field(default=None, gt=0)
    pouring_temp_c: Optional[float] = Field(default=None, gt=0)
    pouring_time_sec: Optional[int] = Field(default=None, gt=0)
    inoculation: Optional[Any] = None
    other_remarks: Optional[Any] = None
    remarks: Optional[str] = None


class PouringDetailsUpdate(_RecordUpdate):
    pour_date: Optional[date] = None
    heat_code: Optional[str] = Field(default=None, max_length=50)
    composition: Optional[Any] = None
    no_of_mould_poured: Optional[int] = Field(default=None, gt=0)
    pouring_temp_c: Optional[float] = Field(default=None, gt=0)
    pouring_time_sec: Optional[int] = Field(default=None, gt=0)
    inoculation: Optional[Any] = None
    other_remarks: Optional[Any] = None
    remarks: Optional[str] = None


# ---- machine shop ----
class MachineShopCreate(_RecordCreate):
    inspection_date: date
    inspections: Optional[Any] = None
    remarks: Optional[str] = None


class MachineShopUpdate(_RecordUpdate):
    inspection_date: Optional[date] = None
    inspections: Optional[Any] = None
    remarks: Optional[str] = None


# ---- metallurgical inspection ----
class MetallurgicalInspectionCreate(_RecordCreate):
    inspection_date: date
    micro_structure: Optional[Any] = None
    micro_structure_ok: Optional[bool] = None
    micro_structure_remarks: Optional[str] = None
    mech_properties: Optional[Any] = None
    mech_properties_ok: Optional[bool] = None
    mech_properties_remarks: Optional[str] = None
    impact_strength: Optional[Any] = None
    impact_strength_ok: Optional[bool] = None
    impact_strength_remarks: Optional[str] = None
    hardness: Optional[Any] = None
    hardness_ok: Optional[bool] = None
    hardness_remarks: Optional[str] = None
    ndt_inspection: Optional[Any] = None
    ndt_inspection_ok: Optional[bool] = None
    ndt_inspection_remarks: Optional[str] = None


class MetallurgicalInspectionUpdate(_RecordUpdate):
    inspection_date: Optional[date] = None
    micro_structure: Optional[Any] = None
    micro_structure_ok: Optional[bool] = None
    micro_structure_remarks: Optional[str] = None
    mech_properties: Optional[Any] = None
    mech_properties_ok: Optional[bool] = None
    mech_properties_remarks: Optional[str] = None
    impact_strength: Optional[Any] = None
    impact_strength_ok: Optional[bool] = None
    impact_strength_remarks: Optional[str] = None
    hardness: Optional[Any] = None
    hardness_ok: Optional[bool] = None
    hardness_remarks: Optional[str] = None
    ndt_inspection: Optional[Any] = None
    ndt_inspection_ok: Optional[bool] = None
    ndt_inspection_remarks: Optional[str] = None


# ---- dimensional inspection ----
class DimensionalInspectionCreate(_RecordCreate):
    inspection_date: date
    casting_weight: Optional[float] = Field(default=None, gt=0)
    bunch_weight: Optional[float] = Field(default=None, gt=0)
    no_of_cavities: Optional[int] = Field(default=None, gt=0)
    yields: Optional[float] = Field(default=None, gt=0)
    inspections: Optional[Any] = None
    remarks: Optional[str] = None


class DimensionalInspectionUpdate(_RecordUpdate):
    inspection_date: Optional[date] = None
    casting_weight: Optional[float] = Field(default=None, gt=0)
    bunch_weight: Optional[float] = Field(default=None, gt=0)
    no_of_cavities: Optional[int] = Field(default=None, gt=0)
    yields: Optional[float] = Field(default=None, gt=0)
    inspections: Optional[Any] = None
    remarks: Optional[str] = None


# =========================================
# =============== Documents ===============
# =========================================
class DocumentCreate(BaseModel):
    trial_id: str = Field(min_length=1)
    document_type: str = Field(min_length=1, max_length=100)
    file_name: str = Field(min_length=1, max_length=255)
    file_base64: str = Field(min_length=1)
    remarks: Optional[str] = None
