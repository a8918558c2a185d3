"""init

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 09:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e7a9d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False))
    return cols


def _trial_record(name: str, *columns) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trial_id", sa.String(length=100), nullable=False),
        *columns,
        *_timestamps(),
        sa.ForeignKeyConstraint(["trial_id"], ["trial_cards.trial_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trial_id"),
    )


def upgrade() -> None:
    """Upgrade schema."""

    # ===== Organisation =====
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "department_flow",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        sa.Column("sequence_no", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("department_id"),
        sa.UniqueConstraint("sequence_no"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=150), nullable=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(length=20), server_default="User", nullable=False),
        sa.Column("machine_shop_user_type", sa.String(length=20), server_default="N/A", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("needs_password_change", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("profile_photo", sa.Text(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('User', 'HOD', 'Admin')", name="ck_users_role"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)
    op.create_index(op.f("ix_users_department_id"), "users", ["department_id"], unique=False)
    op.create_index("ix_users_dept_role_active", "users", ["department_id", "role", "is_active"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("trial_id", sa.String(length=100), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("action_timestamp", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_log_user_id"), "audit_log", ["user_id"], unique=False)
    op.create_index(op.f("ix_audit_log_trial_id"), "audit_log", ["trial_id"], unique=False)

    # ===== Master list =====
    op.create_table(
        "master_card",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pattern_code", sa.String(length=150), nullable=False),
        sa.Column("part_name", sa.String(length=100), nullable=False),
        sa.Column("material_grade", sa.String(length=50), nullable=True),
        sa.Column("chemical_composition", sa.JSON(), nullable=True),
        sa.Column("micro_structure", sa.Text(), nullable=True),
        sa.Column("tensile", sa.Text(), nullable=True),
        sa.Column("impact", sa.Text(), nullable=True),
        sa.Column("hardness", sa.Text(), nullable=True),
        sa.Column("xray", sa.Text(), nullable=True),
        sa.Column("mpi", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_master_card_pattern_code"), "master_card", ["pattern_code"], unique=True)

    op.create_table(
        "tooling_pattern_data",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("master_card_id", sa.Integer(), nullable=False),
        sa.Column("number_of_cavity", sa.String(length=50), nullable=True),
        sa.Column("cavity_identification", sa.String(length=100), nullable=True),
        sa.Column("pattern_material", sa.String(length=100), nullable=True),
        sa.Column("core_weight", sa.String(length=50), nullable=True),
        sa.Column("core_mask_thickness", sa.String(length=50), nullable=True),
        sa.Column("estimated_casting_weight", sa.String(length=50), nullable=True),
        sa.Column("estimated_bunch_weight", sa.String(length=50), nullable=True),
        sa.Column("sp_pattern_plate_thickness", sa.String(length=50), nullable=True),
        sa.Column("sp_pattern_plate_weight", sa.String(length=50), nullable=True),
        sa.Column("sp_core_mask_weight", sa.String(length=50), nullable=True),
        sa.Column("sp_crush_pin_height", sa.String(length=50), nullable=True),
        sa.Column("sp_calculated_yield", sa.String(length=50), nullable=True),
        sa.Column("pp_pattern_plate_thickness", sa.String(length=50), nullable=True),
        sa.Column("pp_pattern_plate_weight", sa.String(length=50), nullable=True),
        sa.Column("pp_core_mask_weight", sa.String(length=50), nullable=True),
        sa.Column("pp_crush_pin_height", sa.String(length=50), nullable=True),
        sa.Column("pp_calculated_yield", sa.String(length=50), nullable=True),
        sa.Column("yield_label", sa.String(length=50), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["master_card_id"], ["master_card.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("master_card_id"),
    )

    # ===== Trial cards =====
    op.create_table(
        "trial_cards",
        sa.Column("trial_id", sa.String(length=100), nullable=False),
        sa.Column("trial_no", sa.Integer(), nullable=True),
        sa.Column("part_name", sa.String(length=100), nullable=False),
        sa.Column("pattern_code", sa.String(length=150), nullable=False),
        sa.Column("trial_type", sa.String(length=50), nullable=False),
        sa.Column("material_grade", sa.String(length=50), nullable=False),
        sa.Column("initiated_by", sa.String(length=50), nullable=False),
        sa.Column("date_of_sampling", sa.Date(), nullable=False),
        sa.Column("plan_moulds", sa.Integer(), nullable=False),
        sa.Column("actual_moulds", sa.Integer(), nullable=True),
        sa.Column("reason_for_sampling", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="CREATED", nullable=False),
        sa.Column("current_department_id", sa.Integer(), nullable=True),
        sa.Column("disa", sa.String(length=50), nullable=False),
        sa.Column("sample_traceability", sa.String(length=50), nullable=False),
        sa.Column("mould_correction", sa.JSON(), nullable=True),
        sa.Column("tooling_modification", sa.Text(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("plan_moulds > 0", name="ck_trial_plan_moulds"),
        sa.ForeignKeyConstraint(["current_department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("trial_id"),
    )
    op.create_index(op.f("ix_trial_cards_part_name"), "trial_cards", ["part_name"], unique=False)
    op.create_index(op.f("ix_trial_cards_pattern_code"), "trial_cards", ["pattern_code"], unique=False)
    op.create_index("ix_trial_cards_status", "trial_cards", ["status", "deleted_at"], unique=False)

    op.create_table(
        "department_progress",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trial_id", sa.String(length=100), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=True),
        sa.Column("approval_status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint("approval_status IN ('pending', 'approved')", name="ck_progress_status"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.ForeignKeyConstraint(["trial_id"], ["trial_cards.trial_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trial_id", "department_id", name="uq_progress_trial_department"),
    )
    op.create_index(op.f("ix_department_progress_username"), "department_progress", ["username"], unique=False)

    # ===== Department inspections (one row per trial) =====
    _trial_record(
        "material_correction",
        sa.Column("chemical_composition", sa.JSON(), nullable=True),
        sa.Column("process_parameters", sa.JSON(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
    )
    _trial_record(
        "sand_properties",
        sa.Column("date", sa.Date(), nullable=False),
        *[sa.Column(c, sa.Numeric(10, 3), nullable=True) for c in (
            "t_clay", "a_clay", "vcm", "loi", "afs", "gcs", "moi", "compactability", "permeability",
        )],
        sa.Column("remarks", sa.Text(), nullable=True),
    )
    _trial_record(
        "visual_inspection",
        sa.Column("inspections", sa.JSON(), nullable=True),
        sa.Column("visual_ok", sa.Boolean(), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("ndt_inspection", sa.JSON(), nullable=True),
        sa.Column("ndt_inspection_ok", sa.Boolean(), nullable=True),
        sa.Column("ndt_inspection_remarks", sa.Text(), nullable=True),
    )
    _trial_record(
        "mould_correction",
        sa.Column("mould_thickness", sa.String(length=50), nullable=True),
        sa.Column("compressability", sa.String(length=50), nullable=True),
        sa.Column("squeeze_pressure", sa.String(length=50), nullable=True),
        sa.Column("mould_hardness", sa.String(length=50), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
    )
    _trial_record(
        "pouring_details",
        sa.Column("pour_date", sa.Date(), nullable=False),
        sa.Column("heat_code", sa.String(length=50), nullable=True),
        sa.Column("composition", sa.JSON(), nullable=True),
        sa.Column("no_of_mould_poured", sa.Integer(), nullable=True),
        sa.Column("pouring_temp_c", sa.Numeric(10, 2), nullable=True),
        sa.Column("pouring_time_sec", sa.Integer(), nullable=True),
        sa.Column("inoculation", sa.JSON(), nullable=True),
        sa.Column("other_remarks", sa.JSON(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
    )
    _trial_record(
        "machine_shop",
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("inspections", sa.JSON(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
    )
    metallurgical = [sa.Column("inspection_date", sa.Date(), nullable=False)]
    for part in ("micro_structure", "mech_properties", "impact_strength", "hardness", "ndt_inspection"):
        metallurgical += [
            sa.Column(part, sa.JSON(), nullable=True),
            sa.Column(f"{part}_ok", sa.Boolean(), nullable=True),
            sa.Column(f"{part}_remarks", sa.Text(), nullable=True),
        ]
    _trial_record("metallurgical_inspection", *metallurgical)
    _trial_record(
        "dimensional_inspection",
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("casting_weight", sa.Numeric(12, 3), nullable=True),
        sa.Column("bunch_weight", sa.Numeric(12, 3), nullable=True),
        sa.Column("no_of_cavities", sa.Integer(), nullable=True),
        sa.Column("yields", sa.Numeric(6, 2), nullable=True),
        sa.Column("inspections", sa.JSON(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
    )

    # ===== Documents and reports =====
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trial_id", sa.String(length=100), nullable=False),
        sa.Column("document_type", sa.String(length=100), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_base64", sa.Text(), nullable=False),
        sa.Column("uploaded_by", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["trial_id"], ["trial_cards.trial_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_documents_trial_id"), "documents", ["trial_id"], unique=False)

    op.create_table(
        "trial_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trial_id", sa.String(length=100), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_base64", sa.Text(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=50), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["trial_id"], ["trial_cards.trial_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trial_id"),
    )

    op.create_table(
        "consolidated_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pattern_code", sa.String(length=150), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_base64", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pattern_code"),
    )

    # ===== OTPs =====
    op.create_table(
        "email_otps",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=150), nullable=False),
        sa.Column("otp_code", sa.String(length=10), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_email_otps_user_id"), "email_otps", ["user_id"], unique=False)

    op.create_table(
        "password_reset_otps",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("otp_code", sa.String(length=10), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_password_reset_otps_user_id"), "password_reset_otps", ["user_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "password_reset_otps", "email_otps", "consolidated_reports", "trial_reports", "documents",
        "dimensional_inspection", "metallurgical_inspection", "machine_shop", "pouring_details",
        "mould_correction", "visual_inspection", "sand_properties", "material_correction",
        "department_progress", "trial_cards", "tooling_pattern_data", "master_card",
        "audit_log", "users", "department_flow", "departments",
    ):
        op.drop_table(table)
