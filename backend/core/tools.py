"""
Trader's calculators: position sizing and classic floor pivots.
"""
import math
from typing import Optional


def position_size(
    account_balance: float,
    risk_percent: float,
    entry_price: float,
    stop_loss: float,
) -> Optional[dict]:
    """Whole units to buy so that hitting the stop loses ``risk_percent`` of the account."""
    if account_balance <= 0 or risk_percent <= 0 or entry_price <= 0 or stop_loss <= 0:
        return None
    risk_per_unit = abs(entry_price - stop_loss)
    if risk_per_unit == 0:
        return None

    risk_amount = account_balance * risk_percent / 100
    quantity = math.floor(risk_amount / risk_per_unit)
    return {
        "risk_amount": round(risk_amount, 2),
        "risk_per_unit": round(risk_per_unit, 2),
        "quantity": quantity,
        "capital_required": round(quantity * entry_price, 2),
    }


def pivot_points(high: float, low: float, close: float) -> Optional[dict]:
    if high <= 0 or low <= 0 or close <= 0:
        return None
    pp = (high + low + close) / 3
    levels = {
        "r3": high + 2 * (pp - low),
        "r2": pp + (high - low),
        "r1": 2 * pp - low,
        "pp": pp,
        "s1": 2 * pp - high,
        "s2": pp - (high - low),
        "s3": low - 2 * (high - pp),
    }
    return {k: round(v, 2) for k, v in levels.items()}
