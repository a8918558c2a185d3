# models.py
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship

from database import Base


# =========================================
# ============ Organisation ===============
# =========================================

class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), unique=True, nullable=False)

    users = relationship("User", back_populates="department")
    flow = relationship("DepartmentFlow", back_populates="department", uselist=False)

    def __repr__(self):
        return f"<Department {self.id} {self.name}>"


class DepartmentFlow(Base):
    """Order in which a trial card travels through the departments."""
    __tablename__ = "department_flow"

    id = Column(Integer, primary_key=True)
    department_id = Column(Integer, ForeignKey("departments.id"), unique=True, nullable=False)
    sequence_no = Column(Integer, unique=True, nullable=False)

    department = relationship("Department", back_populates="flow")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=True)
    email = Column(String(150), index=True, nullable=True)
    password_hash = Column(String, nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    role = Column(String(20), nullable=False, default="User", server_default="User")
    machine_shop_user_type = Column(String(20), nullable=False, default="N/A", server_default="N/A")
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False, server_default=text("false"))
    needs_password_change = Column(Boolean, default=True, nullable=False, server_default=text("true"))
    profile_photo = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    department = relationship("Department", back_populates="users")

    __table_args__ = (
        CheckConstraint("role IN ('User', 'HOD', 'Admin')", name="ck_users_role"),
        Index("ix_users_dept_role_active", "department_id", "role", "is_active"),
    )

    @property
    def department_name(self):
        return self.department.name if self.department else None

    def __repr__(self):
        return f"<User {self.username} {self.role}@{self.department_id}>"


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    department_id = Column(Integer, nullable=True)
    trial_id = Column(String(100), nullable=True, index=True)
    action = Column(String(100), nullable=False)
    remarks = Column(Text, nullable=True)
    action_timestamp = Column(DateTime, server_default=func.now(), nullable=False)

    user = relationship("User")


# =========================================
# ============== Master list ==============
# =========================================

class MasterCard(Base):
    __tablename__ = "master_card"

    id = Column(Integer, primary_key=True)
    pattern_code = Column(String(150), unique=True, index=True, nullable=False)
    part_name = Column(String(100), nullable=False)
    material_grade = Column(String(50), nullable=True)
    chemical_composition = Column(JSON, nullable=True)
    micro_structure = Column(Text, nullable=True)
    tensile = Column(Text, nullable=True)
    impact = Column(Text, nullable=True)
    hardness = Column(Text, nullable=True)
    xray = Column(Text, nullable=True)
    mpi = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    tooling = relationship(
        "ToolingPatternData",
        back_populates="master_card",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<MasterCard {self.pattern_code}>"


class ToolingPatternData(Base):
    __tablename__ = "tooling_pattern_data"

    id = Column(Integer, primary_key=True)
    master_card_id = Column(
        Integer, ForeignKey("master_card.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    number_of_cavity = Column(String(50))
    cavity_identification = Column(String(100))
    pattern_material = Column(String(100))
    core_weight = Column(String(50))
    core_mask_thickness = Column(String(50))
    estimated_casting_weight = Column(String(50))
    estimated_bunch_weight = Column(String(50))
    # SP / PP pattern plates
    sp_pattern_plate_thickness = Column(String(50))
    sp_pattern_plate_weight = Column(String(50))
    sp_core_mask_weight = Column(String(50))
    sp_crush_pin_height = Column(String(50))
    sp_calculated_yield = Column(String(50))
    pp_pattern_plate_thickness = Column(String(50))
    pp_pattern_plate_weight = Column(String(50))
    pp_core_mask_weight = Column(String(50))
    pp_crush_pin_height = Column(String(50))
    pp_calculated_yield = Column(String(50))
    yield_label = Column(String(50))
    remarks = Column(Text)

    master_card = relationship("MasterCard", back_populates="tooling")


# =========================================
# ============== Trial cards ==============
# =========================================

class TrialCard(Base):
    __tablename__ = "trial_cards"

    trial_id = Column(String(100), primary_key=True)
    trial_no = Column(Integer, nullable=True)
    part_name = Column(String(100), nullable=False, index=True)
    pattern_code = Column(String(150), nullable=False, index=True)
    trial_type = Column(String(50), nullable=False, default="INHOUSE MACHINING(NPD)")
    material_grade = Column(String(50), nullable=False)
    initiated_by = Column(String(50), nullable=False)
    date_of_sampling = Column(Date, nullable=False)
    plan_moulds = Column(Integer, nullable=False)
    actual_moulds = Column(Integer, nullable=True)
    reason_for_sampling = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="CREATED", server_default="CREATED")
    current_department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    disa = Column(String(50), nullable=False)
    sample_traceability = Column(String(50), nullable=False)
    mould_correction = Column(JSON, nullable=True)
    tooling_modification = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    current_department = relationship("Department")
    progress = relationship("DepartmentProgress", back_populates="trial", passive_deletes=True)
    report = relationship("TrialReport", back_populates="trial", uselist=False, passive_deletes=True)

    __table_args__ = (
        CheckConstraint("plan_moulds > 0", name="ck_trial_plan_moulds"),
        Index("ix_trial_cards_status", "status", "deleted_at"),
    )

    def __repr__(self):
        return f"<TrialCard {self.trial_id} {self.status}>"


class DepartmentProgress(Base):
    __tablename__ = "department_progress"

    id = Column(Integer, primary_key=True)
    trial_id = Column(String(100), ForeignKey("trial_cards.trial_id", ondelete="CASCADE"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    username = Column(String(50), nullable=True, index=True)
    approval_status = Column(String(20), nullable=False, default="pending", server_default="pending")
    completed_at = Column(DateTime, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    trial = relationship("TrialCard", back_populates="progress")
    department = relationship("Department")

    __table_args__ = (
        UniqueConstraint("trial_id", "department_id", name="uq_progress_trial_department"),
        CheckConstraint("approval_status IN ('pending', 'approved')", name="ck_progress_status"),
    )

    def __repr__(self):
        return f"<DepartmentProgress {self.trial_id} dept={self.department_id} {self.approval_status}>"


# =========================================
# ======== Department inspections =========
# =========================================

class _TrialRecord:
    """Columns shared by every per-department record (one per trial)."""
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


def _trial_fk():
    return Column(
        String(100),
        ForeignKey("trial_cards.trial_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )


class MaterialCorrection(_TrialRecord, Base):
    __tablename__ = "material_correction"

    trial_id = _trial_fk()
    chemical_composition = Column(JSON)
    process_parameters = Column(JSON)
    remarks = Column(Text)


class SandProperties(_TrialRecord, Base):
    __tablename__ = "sand_properties"

    trial_id = _trial_fk()
    date = Column(Date, nullable=False)
    t_clay = Column(Numeric(10, 3))
    a_clay = Column(Numeric(10, 3))
    vcm = Column(Numeric(10, 3))
    loi = Column(Numeric(10, 3))
    afs = Column(Numeric(10, 3))
    gcs = Column(Numeric(10, 3))
    moi = Column(Numeric(10, 3))
    compactability = Column(Numeric(10, 3))
    permeability = Column(Numeric(10, 3))
    remarks = Column(Text)


class VisualInspection(_TrialRecord, Base):
    __tablename__ = "visual_inspection"

    trial_id = _trial_fk()
    inspections = Column(JSON)
    visual_ok = Column(Boolean, nullable=False)
    remarks = Column(Text)
    ndt_inspection = Column(JSON)
    ndt_inspection_ok = Column(Boolean)
    ndt_inspection_remarks = Column(Text)


class MouldCorrection(_TrialRecord, Base):
    __tablename__ = "mould_correction"

    trial_id = _trial_fk()
    mould_thickness = Column(String(50))
    compressability = Column(String(50))
    squeeze_pressure = Column(String(50))
    mould_hardness = Column(String(50))
    remarks = Column(Text)
    date = Column(Date, nullable=False)


class PouringDetails(_TrialRecord, Base):
    __tablename__ = "pouring_details"

    trial_id = _trial_fk()
    pour_date = Column(Date, nullable=False)
    heat_code = Column(String(50))
    composition = Column(JSON)
    no_of_mould_poured = Column(Integer)
    pouring_temp_c = Column(Numeric(10, 2))
    pouring_time_sec = Column(Integer)
    inoculation = Column(JSON)
    other_remarks = Column(JSON)
    remarks = Column(Text)


class MachineShop(_TrialRecord, Base):
    __tablename__ = "machine_shop"

    trial_id = _trial_fk()
    inspection_date = Column(Date, nullable=False)
    inspections = Column(JSON)
    remarks = Column(Text)


class MetallurgicalInspection(_TrialRecord, Base):
    __tablename__ = "metallurgical_inspection"

    trial_id = _trial_fk()
    inspection_date = Column(Date, nullable=False)
    micro_structure = Column(JSON)
    micro_structure_ok = Column(Boolean)
    micro_structure_remarks = Column(Text)
    mech_properties = Column(JSON)
    mech_properties_ok = Column(Boolean)
    mech_properties_remarks = Column(Text)
    impact_strength = Column(JSON)
    impact_strength_ok = Column(Boolean)
    impact_strength_remarks = Column(Text)
    hardness = Column(JSON)
    hardness_ok = Column(Boolean)
    hardness_remarks = Column(Text)
    ndt_inspection = Column(JSON)
    ndt_inspection_ok = Column(Boolean)
    ndt_inspection_remarks = Column(Text)


class DimensionalInspection(_TrialRecord, Base):
    __tablename__ = "dimensional_inspection"

    trial_id = _trial_fk()
    inspection_date = Column(Date, nullable=False)
    casting_weight = Column(Numeric(12, 3))
    bunch_weight = Column(Numeric(12, 3))
    no_of_cavities = Column(Integer)
    yields = Column(Numeric(6, 2))
    inspections = Column(JSON)
    remarks = Column(Text)


# record tables in report / "all data" order
DEPARTMENT_RECORD_MODELS = (
    MaterialCorrection,
    SandProperties,
    MouldCorrection,
    PouringDetails,
    VisualInspection,
    DimensionalInspection,
    MetallurgicalInspection,
    MachineShop,
)


# =========================================
# ======== Documents and reports ==========
# =========================================

class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    trial_id = Column(String(100), ForeignKey("trial_cards.trial_id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(String(100), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_base64 = Column(Text, nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    remarks = Column(Text)
    uploaded_at = Column(DateTime, server_default=func.now(), nullable=False)

    uploader = relationship("User")


class TrialReport(Base):
    __tablename__ = "trial_reports"

    id = Column(Integer, primary_key=True)
    trial_id = Column(
        String(100), ForeignKey("trial_cards.trial_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    file_name = Column(String(255), nullable=False)
    file_base64 = Column(Text, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    trial = relationship("TrialCard", back_populates="report")


class ConsolidatedReport(Base):
    __tablename__ = "consolidated_reports"

    id = Column(Integer, primary_key=True)
    pattern_code = Column(String(150), unique=True, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_base64 = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


# =========================================
# ================= OTPs ==================
# =========================================

class EmailOtp(Base):
    __tablename__ = "email_otps"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(150), nullable=False)
    otp_code = Column(String(10), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class PasswordResetOtp(Base):
    __tablename__ = "password_reset_otps"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    otp_code = Column(String(10), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
