# utils/code_generator.py
import re
from typing import Optional

from sqlalchemy.orm import Session

_SEQ = re.compile(r"-(\d+)$")


def sequence_of(code: Optional[str]) -> Optional[int]:
    """Trailing running number: "BRAKE DRUM-3" -> 3"""
    m = _SEQ.search(code or "")
    return int(m.group(1)) if m else None


def next_code(db: Session, model, field: str, prefix: str, sep: str = "-") -> str:
    """
    Running number per prefix: PREFIX-1, PREFIX-2, ...
    Looks at every row (soft-deleted ones too) so a number is never reused.
    """
    col = getattr(model, field)
    pat = re.compile(rf"^{re.escape(prefix)}{re.escape(sep)}(\d+)$")
    max_n = 0
    for (code,) in db.query(col).filter(col.like(f"{prefix}{sep}%")).all():
        m = pat.match(code or "")
        if m:
            n = int(m.group(1))
            if n > max_n: max_n = n
    return f"{prefix}{sep}{max_n + 1}"
