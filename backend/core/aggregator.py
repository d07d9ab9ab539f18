"""
Trade aggregator — descriptive statistics over a journal's trade log.

Every function here is pure and returns plain values. Dirty historical data
degrades to zero or is skipped; nothing here raises on bad records.
"""
from typing import Iterable, Optional

import pandas as pd

from backend.models.trade import Trade, TradeStatus, coerce_number

# Profit factor reported when there are winners but no losers.
# The dashboard caps at 10, the backtest report at 100.
DASHBOARD_NO_LOSS_PROFIT_FACTOR = 10.0
BACKTEST_NO_LOSS_PROFIT_FACTOR = 100.0


def parse_timestamp(value) -> Optional[pd.Timestamp]:
    """Parse an entry/exit date to a naive timestamp, or None if unusable."""
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def trade_pnl(trade: Trade) -> float:
    return coerce_number(getattr(trade, "pnl", 0.0))


def closed_trades(trades: Iterable[Trade]) -> list[Trade]:
    return [t for t in trades if t.status == TradeStatus.CLOSED]


def net_pnl(trades: Iterable[Trade]) -> float:
    return sum(trade_pnl(t) for t in trades)


def win_rate(trades: Iterable[Trade]) -> float:
    pnls = [trade_pnl(t) for t in trades]
    if not pnls:
        return 0.0
    wins = sum(1 for p in pnls if p > 0)
    return wins / len(pnls) * 100


def profit_factor(
    trades: Iterable[Trade], no_loss_value: float = DASHBOARD_NO_LOSS_PROFIT_FACTOR
) -> float:
    gross_profit = 0.0
    gross_loss = 0.0
    for t in trades:
        p = trade_pnl(t)
        if p > 0:
            gross_profit += p
        else:
            gross_loss += abs(p)
    if gross_loss > 0:
        return gross_profit / gross_loss
    return no_loss_value if gross_profit > 0 else 0.0


def average_win(trades: Iterable[Trade]) -> float:
    wins = [p for p in (trade_pnl(t) for t in trades) if p > 0]
    return sum(wins) / len(wins) if wins else 0.0


def average_loss(trades: Iterable[Trade]) -> float:
    losses = [p for p in (trade_pnl(t) for t in trades) if p < 0]
    return sum(losses) / len(losses) if losses else 0.0


def tag_breakdown(trades: Iterable[Trade], field: str = "setups") -> dict[str, float]:
    """Summed P/L per tag, largest first.

    A trade carrying several tags contributes its whole P/L to each of them.
    """
    totals: dict[str, float] = {}
    for t in trades:
        p = trade_pnl(t)
        for tag in getattr(t, field, None) or []:
            totals[tag] = totals.get(tag, 0.0) + p
    return dict(sorted(totals.items(), key=lambda kv: kv[1], reverse=True))


def sort_by_entry(trades: Iterable[Trade]) -> list[tuple[pd.Timestamp, Trade]]:
    """(timestamp, trade) pairs in entry order; undated trades are dropped.

    ``sorted`` is stable, so trades entered at the same instant keep their
    input order.
    """
    dated = []
    for t in trades:
        ts = parse_timestamp(t.entry_date)
        if ts is not None:
            dated.append((ts, t))
    return sorted(dated, key=lambda pair: pair[0])


def cumulative_equity(trades: Iterable[Trade], date_format: str = "%Y-%m-%d") -> list[dict]:
    equity = 0.0
    series = []
    for ts, t in sort_by_entry(trades):
        equity += trade_pnl(t)
        series.append({"date": ts.strftime(date_format), "equity": round(equity, 2)})
    return series


def parse_rr(value) -> Optional[float]:
    """Reward side of a risk:reward value: ``2.5`` or ``"1:2.5"`` gives 2.5.

    Strings are read from the token after the last colon. Returns None for
    anything that is not a positive number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.split(":")[-1].strip()
    rr = coerce_number(value, default=float("nan"))
    if rr != rr or rr <= 0:
        return None
    return rr


def average_rr(trades: Iterable[Trade]) -> float:
    values = [rr for rr in (parse_rr(t.rr_ratio) for t in trades) if rr is not None]
    return sum(values) / len(values) if values else 0.0


def dashboard_stats(trades: Iterable[Trade], rules: Optional[list[dict]] = None) -> dict:
    """Headline numbers for the dashboard, computed over closed trades only."""
    closed = closed_trades(trades)
    rules = rules or []
    committed = sum(1 for r in rules if r.get("committed_today"))
    return {
        "net_pnl": round(net_pnl(closed), 2),
        "win_rate": round(win_rate(closed), 2),
        "profit_factor": round(profit_factor(closed, DASHBOARD_NO_LOSS_PROFIT_FACTOR), 2),
        "total_trades": len(closed),
        "avg_rr": round(average_rr(closed), 2),
        "average_winner": round(average_win(closed), 2),
        "average_loser": round(average_loss(closed), 2),
        "discipline_score": round(committed / len(rules) * 100, 2) if rules else 0.0,
    }


def calendar_month(trades: Iterable[Trade], year: int, month: int) -> dict:
    """Per-day P/L, trade count and wins for closed trades entered in a month."""
    rows = []
    for ts, t in sort_by_entry(closed_trades(trades)):
        if ts.year == year and ts.month == month:
            p = trade_pnl(t)
            rows.append({"day": ts.day, "pnl": p, "win": 1 if p > 0 else 0})

    if not rows:
        return {"year": year, "month": month, "days": {}, "month_pnl": 0.0}

    df = pd.DataFrame(rows)
    grouped = df.groupby("day").agg(
        pnl=("pnl", "sum"), trades=("pnl", "size"), wins=("win", "sum")
    )
    days = {
        int(day): {
            "pnl": round(float(row["pnl"]), 2),
            "trades": int(row["trades"]),
            "wins": int(row["wins"]),
        }
        for day, row in grouped.iterrows()
    }
    return {
        "year": year,
        "month": month,
        "days": days,
        "month_pnl": round(float(df["pnl"].sum()), 2),
    }


def mistake_counts(trades: Iterable[Trade]) -> dict[str, int]:
    """Pareto of logged mistakes, most frequent first."""
    counts: dict[str, int] = {}
    for t in trades:
        for m in t.mistakes:
            counts[m] = counts.get(m, 0) + 1
    return dict(sorted(counts.items(), key=lambda kv: kv[1], reverse=True))


def strategy_names(strategies: Iterable, trades: Iterable[Trade]) -> list[str]:
    """Sorted union of saved strategy names and strategy tags used on trades."""
    names = set()
    for s in strategies:
        name = s.get("name") if isinstance(s, dict) else getattr(s, "name", None)
        if name:
            names.add(name)
    for t in trades:
        names.update(t.strategies)
    return sorted(names)
