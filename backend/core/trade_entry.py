"""
Trade entry helpers — the input side that produces a trade's stored P/L.

Analytics never call into this module; they trust ``Trade.pnl`` as given.
"""
from backend.models.trade import TradeStatus, TradeType, coerce_number


def calculate_net_pnl(
    trade_type: TradeType,
    entry_price: float,
    exit_price: float,
    quantity: float,
    fees: float = 0.0,
) -> float:
    """Net P/L = (exit - entry) * qty * direction - fees, to 2 decimals."""
    direction = 1 if TradeType(trade_type) == TradeType.LONG else -1
    gross = (coerce_number(exit_price) - coerce_number(entry_price)) * coerce_number(quantity) * direction
    return round(gross - coerce_number(fees), 2)


def validate_trade(data: dict) -> dict[str, str]:
    """Return field -> message for every problem; empty dict means valid."""
    errors: dict[str, str] = {}
    if not str(data.get("symbol") or "").strip():
        errors["symbol"] = "Symbol required"
    if coerce_number(data.get("entry_price")) <= 0:
        errors["entry_price"] = "Entry price required"
    status = data.get("status", TradeStatus.CLOSED)
    if status == TradeStatus.CLOSED and coerce_number(data.get("exit_price")) <= 0:
        errors["exit_price"] = "Exit price required"
    return errors
