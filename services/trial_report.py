# services/trial_report.py
import base64
import io
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from docx import Document
from docx.enum.table import WD_CELL_VERTICAL_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt
from sqlalchemy.orm import Session

from models import (
    DEPARTMENT_RECORD_MODELS,
    ConsolidatedReport,
    MasterCard,
    TrialCard,
    TrialReport,
)
from utils import fmt_date, sa_to_dict
from utils.spec_parser import parse_master_specs

logger = logging.getLogger(__name__)

_SKIP = {"id", "trial_id", "created_at", "updated_at"}

SECTION_TITLES = {
    "material_correction": "Material Correction (QC)",
    "sand_properties": "Sand Properties",
    "mould_correction": "Mould Correction",
    "pouring_details": "Pouring Details",
    "visual_inspection": "Fettling & Visual Inspection",
    "dimensional_inspection": "Dimensional Inspection (QA)",
    "metallurgical_inspection": "Metallurgical Inspection",
    "machine_shop": "Machine Shop",
}


# ==================================================
# Helpers
# ==================================================
def center_cell(cell):
    cell.vertical_alignment = WD_CELL_VERTICAL_ALIGNMENT.CENTER
    for p in cell.paragraphs:
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER


def safe_text(v) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "OK" if v else "NOT OK"
    if isinstance(v, (date, datetime)):
        return fmt_date(v)
    if isinstance(v, Decimal):
        return f"{float(v):g}"
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False, default=str)
    return str(v)


def _label(key: str) -> str:
    return key.replace("_", " ").title()


def add_key_value_table(doc, rows):
    table = doc.add_table(rows=0, cols=2)
    table.style = "Table Grid"
    for k, v in rows:
        cells = table.add_row().cells
        cells[0].text = k
        cells[1].text = safe_text(v)
        for r in cells[0].paragraphs[0].runs:
            r.bold = True
    return table


def add_list_table(doc, items):
    """List of dicts (per-cavity inspections) -> grid with the union of keys as header."""
    headers = []
    for it in items:
        for k in it.keys():
            if k not in headers:
                headers.append(k)
    if not headers:
        return None
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"
    for i, h in enumerate(headers):
        table.rows[0].cells[i].text = str(h)
        center_cell(table.rows[0].cells[i])
    for it in items:
        cells = table.add_row().cells
        for i, h in enumerate(headers):
            cells[i].text = safe_text(it.get(h))
            center_cell(cells[i])
    return table


def _to_base64(doc) -> str:
    buf = io.BytesIO()
    doc.save(buf)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _new_document(title: str):
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    heading = doc.add_heading(title, level=0)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
    return doc


# ==================================================
# Trial report
# ==================================================
def collect_department_records(db: Session, trial_id: str) -> dict:
    """table name -> list of record dicts (same shape as /trial/all-data)."""
    out = {}
    for Model in DEPARTMENT_RECORD_MODELS:
        rows = db.query(Model).filter(Model.trial_id == trial_id).all()
        out[Model.__tablename__] = [sa_to_dict(r) for r in rows]
    return out


def build_trial_report(trial: TrialCard, master: Optional[MasterCard], records: dict):
    doc = _new_document("Digital Sample Card")

    doc.add_heading("Trial details", level=1)
    add_key_value_table(doc, [
        ("Trial ID", trial.trial_id),
        ("Trial No", trial.trial_no),
        ("Part Name", trial.part_name),
        ("Pattern Code", trial.pattern_code),
        ("Trial Type", trial.trial_type),
        ("Material Grade", trial.material_grade),
        ("Initiated By", trial.initiated_by),
        ("Date of Sampling", trial.date_of_sampling),
        ("Planned Moulds", trial.plan_moulds),
        ("Actual Moulds", trial.actual_moulds),
        ("Reason for Sampling", trial.reason_for_sampling),
        ("DISA", trial.disa),
        ("Sample Traceability", trial.sample_traceability),
        ("Tooling Modification", trial.tooling_modification),
        ("Remarks", trial.remarks),
    ])

    if master is not None:
        specs = parse_master_specs(master)
        doc.add_heading("Specification", level=1)
        chem = specs["chemical_composition"]
        add_key_value_table(doc, [(k.upper(), v) for k, v in chem.items()])
        doc.add_paragraph()
        t = specs["tensile"]
        m = specs["micro_structure"]
        h = specs["hardness"]
        add_key_value_table(doc, [
            ("Tensile Strength", t["tensile_strength"]),
            ("Yield Strength", t["yield_strength"]),
            ("Elongation", t["elongation"]),
            ("Impact", specs["impact"]),
            ("Nodularity", m["nodularity"]),
            ("Pearlite", m["pearlite"]),
            ("Carbide", m["carbide"]),
            ("Hardness (surface)", h["surface"]),
            ("Hardness (core)", h["core"]),
            ("X-Ray", specs["xray"]),
        ])

    for table_name, rows in records.items():
        doc.add_heading(SECTION_TITLES.get(table_name, _label(table_name)), level=1)
        if not rows:
            doc.add_paragraph("No data recorded.")
            continue
        for rec in rows:
            plain, grids = [], []
            for k, v in rec.items():
                if k in _SKIP:
                    continue
                if isinstance(v, list) and v and all(isinstance(i, dict) for i in v):
                    grids.append((k, v))
                else:
                    plain.append((_label(k), v))
            add_key_value_table(doc, plain)
            for k, items in grids:
                doc.add_paragraph(_label(k)).runs[0].bold = True
                add_list_table(doc, items)
    return doc


def generate_and_store_trial_report(db: Session, trial_id: str) -> TrialReport:
    trial = db.get(TrialCard, trial_id)
    if trial is None:
        raise ValueError(f"Trial {trial_id} not found")
    master = db.query(MasterCard).filter(MasterCard.pattern_code == trial.pattern_code).first()
    doc = build_trial_report(trial, master, collect_department_records(db, trial_id))

    report = db.query(TrialReport).filter(TrialReport.trial_id == trial_id).first()
    if report is None:
        report = TrialReport(trial_id=trial_id)
        db.add(report)
    report.file_name = f"{trial_id}_report.docx"
    report.file_base64 = _to_base64(doc)
    report.deleted_at = None
    report.deleted_by = None
    db.flush()
    logger.info("trial report stored for %s", trial_id)
    return report


# ==================================================
# Consolidated report (all trials of a pattern)
# ==================================================
def build_consolidated_report(pattern_code: str, master: Optional[MasterCard], trials: list, records_by_trial: dict):
    doc = _new_document(f"Consolidated Trial Report: {pattern_code}")
    if master is not None:
        doc.add_paragraph(f"Part name: {master.part_name}    Material grade: {master.material_grade or ''}")

    headers = ["Trial ID", "Date", "Type", "Planned", "Actual", "Status", "Yield %", "Visual"]
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"
    for i, h in enumerate(headers):
        table.rows[0].cells[i].text = h
        center_cell(table.rows[0].cells[i])

    for t in trials:
        recs = records_by_trial.get(t.trial_id, {})
        dim = (recs.get("dimensional_inspection") or [{}])[0]
        vis = (recs.get("visual_inspection") or [{}])[0]
        cells = table.add_row().cells
        values = [
            t.trial_id, t.date_of_sampling, t.trial_type, t.plan_moulds, t.actual_moulds,
            t.status, dim.get("yields"), vis.get("visual_ok"),
        ]
        for i, v in enumerate(values):
            cells[i].text = safe_text(v)
            center_cell(cells[i])
    return doc


def generate_and_store_consolidated_report(db: Session, pattern_code: str) -> ConsolidatedReport:
    trials = (
        db.query(TrialCard)
        .filter(TrialCard.pattern_code == pattern_code, TrialCard.deleted_at.is_(None))
        .order_by(TrialCard.date_of_sampling, TrialCard.trial_id)
        .all()
    )
    master = db.query(MasterCard).filter(MasterCard.pattern_code == pattern_code).first()
    records = {t.trial_id: collect_department_records(db, t.trial_id) for t in trials}
    doc = build_consolidated_report(pattern_code, master, trials, records)

    report = db.query(ConsolidatedReport).filter(ConsolidatedReport.pattern_code == pattern_code).first()
    if report is None:
        report = ConsolidatedReport(pattern_code=pattern_code)
        db.add(report)
    report.file_name = f"{pattern_code}_consolidated.docx"
    report.file_base64 = _to_base64(doc)
    db.flush()
    logger.info("consolidated report stored for %s (%d trials)", pattern_code, len(trials))
    return report
