# utils/__init__.py
import re
import secrets
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.inspection import inspect


def sa_to_dict(obj, exclude=()):
    """SQLAlchemy object -> dict (columns only)"""
    if obj is None:
        return None
    mapper = inspect(obj.__class__)
    data = {}
    for col in mapper.columns:
        if col.key in exclude:
            continue
        data[col.key] = getattr(obj, col.key)
    return data


def sa_update_from_dict(obj, data: dict, allow_fields=None):
    """Set attributes on obj from data (optionally limited to allow_fields)."""
    if allow_fields is None:
        allow_fields = data.keys()
    for k in allow_fields:
        if k in data:
            setattr(obj, k, data[k])
    return obj


def utcnow() -> datetime:
    # naive UTC, matches the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


_QUOTES = re.compile(r"[\"']")


def strip_quotes(value):
    """Query strings sometimes arrive JSON-quoted: "'ABC-1'" -> ABC-1"""
    if value is None:
        return None
    return _QUOTES.sub("", str(value)).strip()


def to_number(value):
    """float(value) or None for blanks / junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    s = str(value).strip()
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def fmt_date(value):
    if isinstance(value, (date, datetime)):
        return value.strftime("%d-%m-%Y")
    return value or ""


def new_otp(length: int = 6) -> str:
    return f"{secrets.randbelow(10 ** length):0{length}d}"
