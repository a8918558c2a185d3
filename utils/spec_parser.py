# utils/spec_parser.py
"""
Best-effort readers for the free-text specification columns of a master card.
They never raise: anything unrecognised comes back blank ("" or "--").
"""
import json
import re

CHEMICAL_KEYS = ("c", "si", "mn", "p", "s", "mg", "cr", "cu")
_CHEM_ALIASES = {"silicon": "si", "carbon": "c", "manganese": "mn", "magnesium": "mg"}

_CHEM_TEXT = re.compile(
    r"\b(silicon|carbon|manganese|magnesium|si|mn|mg|cr|cu|c|p|s)\b\s*[:=]?\s*"
    r"([<>≤≥]?\s*\d+(?:\.\d+)?(?:\s*-\s*\d+(?:\.\d+)?)?)",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"([≥>]?)\s*(\d+(?:\.\d+)?)\s*(?:mpa|n/mm²|n/mm2|kgf/mm²|%)?", re.IGNORECASE)
_RANGE_OR_NUMBER = re.compile(r"(\d+\s*-\s*\d+|\d+)")


def _blank_chemistry() -> dict:
    return {k: "" for k in CHEMICAL_KEYS}


def _norm_key(key) -> str:
    k = re.sub(r"\s+", "", str(key)).lower()
    return _CHEM_ALIASES.get(k, k)


def parse_chemical_composition(value) -> dict:
    """dict / JSON string / "C: 3.5% Si: 2.1%" text -> {c, si, mn, p, s, mg, cr, cu}"""
    out = _blank_chemistry()
    if not value:
        return out

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            pass

    if isinstance(value, dict):
        for k, v in value.items():
            key = _norm_key(k)
            if key in out and v is not None and out[key] == "":
                out[key] = str(v)
        return out

    if not isinstance(value, str):
        return out

    for name, amount in _CHEM_TEXT.findall(value):
        key = _norm_key(name)
        if key in out and not out[key]:
            out[key] = re.sub(r"\s+", "", amount)
    return out


def _with_prefix(prefix: str, number: str) -> str:
    return f"{prefix or '≥'}{number}"


def _line_value(line: str) -> str:
    m = re.search(r"([≥>])\s*(\d+(?:\.\d+)?)", line)
    if m:
        return f"{m.group(1)}{m.group(2)}"
    m = re.search(r"(\d+(?:\.\d+)?)", line)
    if not m:
        return ""
    if "min" in line.lower():
        return f"≥{m.group(1)}"
    return m.group(1)


def parse_tensile(text) -> dict:
    """
    "≥ 500 MPa, ≥ 320 MPa, ≥ 7%" -> tensile / yield / elongation in that order.
    With fewer than two figures each line is read by keyword instead.
    """
    out = {
        "tensile_strength": "",
        "yield_strength": "",
        "elongation": "",
        "impact_cold": "",
        "impact_room": "",
    }
    if not text or not isinstance(text, str):
        return out

    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    spec_lines = [ln for ln in lines if "impact" not in ln.lower()]
    matches = _NUMBER.findall("\n".join(spec_lines))

    if len(matches) >= 2:
        for key, (prefix, number) in zip(("tensile_strength", "yield_strength", "elongation"), matches):
            out[key] = _with_prefix(prefix, number)
    else:
        for ln in spec_lines:
            low = ln.lower()
            if "yield" in low:
                out["yield_strength"] = out["yield_strength"] or _line_value(ln)
            elif "elongation" in low or "%" in low:
                out["elongation"] = out["elongation"] or _line_value(ln)
            elif "tensile" in low or re.search(r"mpa|n/mm|[≥>]\s*\d", low):
                out["tensile_strength"] = out["tensile_strength"] or _line_value(ln)

    for ln in lines:
        low = ln.lower()
        if "impact" not in low:
            continue
        if "room" in low or "rt" in low.split():
            out["impact_room"] = out["impact_room"] or _line_value(re.sub(r"-?\d+\s*°?c", "", low))
        else:
            out["impact_cold"] = out["impact_cold"] or _line_value(re.sub(r"-?\d+\s*°?c", "", low))
    return out


def _bound(line: str) -> str:
    for sym in ("≥", "≤", "<", ">"):
        m = re.search(re.escape(sym) + r"\s*(\d+)", line)
        if m:
            return f"{sym}{m.group(1)}"
    m = re.search(r"(\d+\s*-\s*\d+)", line)
    if m:
        return m.group(1).replace(" ", "")
    m = re.search(r"(\d+)", line)
    if not m:
        return ""
    if "max" in line:
        return f"≤{m.group(1)}"
    if "min" in line:
        return f"≥{m.group(1)}"
    return m.group(1)


def parse_microstructure(text) -> dict:
    out = {"nodularity": "", "pearlite": "", "carbide": ""}
    if text and isinstance(text, str):
        for ln in text.splitlines():
            low = ln.strip().lower()
            if "nodularity" in low:
                out["nodularity"] = _bound(low) or out["nodularity"]
            if "pearlite" in low:
                out["pearlite"] = _bound(low) or out["pearlite"]
            if "carbide" in low or "cementite" in low:
                out["carbide"] = _bound(low) or out["carbide"]
    return {k: v or "--" for k, v in out.items()}


def parse_hardness(text) -> dict:
    """Lines naming "surface"/"core"; an unlabelled first figure counts as surface."""
    surface = core = ""
    if text and isinstance(text, str):
        for ln in text.splitlines():
            low = ln.strip().lower()
            m = _RANGE_OR_NUMBER.search(low)
            if not m:
                continue
            if "surface" in low:
                surface = m.group(1)
            elif "core" in low:
                core = m.group(1)
            elif not surface:
                surface = m.group(1)
    return {"surface": surface or "--", "core": core or "--"}


def parse_master_specs(card) -> dict:
    """All parsed spec blocks for one master card (ORM object or dict)."""
    get = card.get if isinstance(card, dict) else lambda k: getattr(card, k, None)
    return {
        "chemical_composition": parse_chemical_composition(get("chemical_composition")),
        "tensile": parse_tensile(get("tensile")),
        "micro_structure": parse_microstructure(get("micro_structure")),
        "hardness": parse_hardness(get("hardness")),
        "impact": get("impact") or "",
        "xray": get("xray") or "",
    }
