# import_master_list.py
# run once: pip install pandas openpyxl
import argparse
import logging

import pandas as pd
from sqlalchemy.orm import Session

from database import SessionLocal
from logging_config import setup_logging
from models import MasterCard
from utils.spec_parser import CHEMICAL_KEYS, parse_chemical_composition

logger = logging.getLogger(__name__)

HEADER_KEYS = {"Pattern Code", "Part Name", "Material Grade"}

# sheet header -> master_card column
COLUMN_MAP = {
    "Pattern Code": "pattern_code",
    "Part Name": "part_name",
    "Material Grade": "material_grade",
    "Micro Structure": "micro_structure",
    "Microstructure": "micro_structure",
    "Tensile": "tensile",
    "Impact": "impact",
    "Hardness": "hardness",
    "X-Ray": "xray",
    "Xray": "xray",
    "MPI": "mpi",
}


def find_header_row(df) -> int:
    for i in range(min(20, len(df))):
        rowvals = set(str(x).strip() for x in df.iloc[i].tolist())
        if any(k in rowvals for k in HEADER_KEYS):
            return i
    return 0


def load_excel(path, sheet=0):
    raw = pd.read_excel(path, sheet_name=sheet, header=None, engine="openpyxl")
    hdr = find_header_row(raw)
    df = pd.read_excel(path, sheet_name=sheet, header=hdr, engine="openpyxl")
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _cell(value):
    if value is None or pd.isna(value):
        return None
    s = str(value).strip()
    return s or None


def _chemistry(row) -> dict:
    """One "Chemical Composition" text column, or one column per element (C, Si, ...)."""
    text = _cell(row.get("Chemical Composition"))
    if text:
        return parse_chemical_composition(text)
    per_element = {}
    for col, value in row.items():
        key = str(col).strip().lower()
        if key in CHEMICAL_KEYS and _cell(value):
            per_element[key] = _cell(value)
    return parse_chemical_composition(per_element) if per_element else None


def upsert_card(db: Session, row) -> str:
    """Returns "created", "updated" or "skipped"."""
    code = _cell(row.get("Pattern Code"))
    if not code:
        return "skipped"

    values = {}
    for header, field in COLUMN_MAP.items():
        v = _cell(row.get(header))
        if v is not None:
            values[field] = v
    chem = _chemistry(row)
    if chem:
        values["chemical_composition"] = chem

    card = db.query(MasterCard).filter(MasterCard.pattern_code == code).one_or_none()
    if card is None:
        if not values.get("part_name"):
            logger.warning("Skipping %s: no part name", code)
            return "skipped"
        card = MasterCard(is_active=True)
        db.add(card)
        status = "created"
    else:
        status = "updated"
    # blank cells keep what is already stored
    for field, v in values.items():
        setattr(card, field, v)
    return status


def import_rows(db: Session, df) -> dict:
    counts = {"created": 0, "updated": 0, "skipped": 0}
    for _, r in df.iterrows():
        counts[upsert_card(db, r)] += 1
        db.flush()
    return counts


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Import master cards from an Excel sheet")
    parser.add_argument("path")
    parser.add_argument("--sheet", default=0)
    args = parser.parse_args(argv)

    setup_logging()
    df = load_excel(args.path, args.sheet)
    db = SessionLocal()
    try:
        counts = import_rows(db, df)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    logger.info("Master list import from %s: %s", args.path, counts)
    print(f"created={counts['created']} updated={counts['updated']} skipped={counts['skipped']}")


if __name__ == "__main__":
    main()
