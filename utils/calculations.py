# utils/calculations.py
"""Derived inspection figures (yield %, rejected quantity, rejection %)."""
from typing import Optional

from utils import to_number


def calculate_yield(casting_weight, no_of_cavities, bunch_weight) -> Optional[float]:
    """casting weight x cavities / bunch weight x 100, 2 decimals."""
    cw = to_number(casting_weight)
    cav = to_number(no_of_cavities)
    bw = to_number(bunch_weight)
    if cw is None or cav is None or bw is None or bw == 0:
        return None
    return round(cw * cav / bw * 100, 2)


def yield_exceeds_limit(casting_weight, no_of_cavities, bunch_weight) -> bool:
    """Total casting weight heavier than the whole bunch is not physically possible."""
    cw = to_number(casting_weight)
    cav = to_number(no_of_cavities)
    bw = to_number(bunch_weight)
    if cw is None or cav is None or bw is None:
        return False
    return cw * cav > bw


def rejected_quantity(inspected, accepted) -> Optional[float]:
    ins = to_number(inspected)
    acc = to_number(accepted)
    if ins is None or acc is None:
        return None
    if acc > ins:
        raise ValueError("Accepted quantity cannot exceed inspected quantity")
    rej = ins - acc
    return int(rej) if rej.is_integer() else rej


def rejection_percentage(inspected, rejected) -> Optional[float]:
    ins = to_number(inspected)
    rej = to_number(rejected)
    if ins is None or ins == 0 or rej is None:
        return None
    if rej > ins:
        raise ValueError("Rejected quantity cannot exceed inspected quantity")
    return round(rej / ins * 100, 2)
