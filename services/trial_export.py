# services/trial_export.py
import io

from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy.orm import Session, joinedload

from models import TrialCard

HEADER = [
    "Trial ID", "Trial No", "Part Name", "Pattern Code", "Trial Type",
    "Material Grade", "Date of Sampling", "Planned Moulds", "Actual Moulds",
    "Status", "Current Department",
]


def build_trial_workbook(db: Session) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Trial Cards"
    ws.append(HEADER)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    trials = (
        db.query(TrialCard)
        .options(joinedload(TrialCard.current_department))
        .filter(TrialCard.deleted_at.is_(None))
        .order_by(TrialCard.date_of_sampling.desc(), TrialCard.trial_id)
        .all()
    )
    for t in trials:
        ws.append([
            t.trial_id,
            t.trial_no,
            t.part_name,
            t.pattern_code,
            t.trial_type,
            t.material_grade,
            t.date_of_sampling,
            t.plan_moulds,
            t.actual_moulds,
            t.status,
            t.current_department.name if t.current_department else None,
        ])

    for col, width in zip("ABCDEFGHIJK", (22, 9, 28, 22, 28, 16, 16, 14, 14, 13, 28)):
        ws.column_dimensions[col].width = width

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
