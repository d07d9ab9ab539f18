"""
Backtesting engine — replays a filtered slice of the journal against a
simulated account balance.
"""
import logging
from datetime import date, datetime, time
from typing import Iterable, Optional

import pandas as pd

from backend.core.aggregator import (
    BACKTEST_NO_LOSS_PROFIT_FACTOR,
    parse_timestamp,
    sort_by_entry,
    trade_pnl,
)
from backend.models.strategy import BacktestConfig, BacktestResult, BacktestSide, EquityPoint
from backend.models.trade import AssetClass, Trade, TradeStatus, TradeType

logger = logging.getLogger(__name__)

_SIDE_TO_TYPE = {
    BacktestSide.LONG: TradeType.LONG,
    BacktestSide.SHORT: TradeType.SHORT,
}


def day_bounds(
    start_date: Optional[date], end_date: Optional[date]
) -> tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]:
    """Inclusive bounds; the end date is widened to 23:59:59.999."""
    start = pd.Timestamp(datetime.combine(start_date, time.min)) if start_date else None
    end = pd.Timestamp(datetime.combine(end_date, time(23, 59, 59, 999000))) if end_date else None
    return start, end


def _date_window(config: BacktestConfig) -> tuple[pd.Timestamp, pd.Timestamp]:
    return day_bounds(config.start_date, config.end_date)


def matches_strategy(trade: Trade, config: BacktestConfig) -> bool:
    if config.all_strategies:
        return True
    wanted = config.strategy_name.lower()
    return any(s.lower() == wanted for s in trade.strategies)


def matches_side(trade: Trade, config: BacktestConfig) -> bool:
    if config.side == BacktestSide.ALL:
        return True
    return trade.trade_type == _SIDE_TO_TYPE[config.side]


def matches_condition(trade: Trade, config: BacktestConfig) -> bool:
    search = config.condition.strip().lower()
    if not search:
        return True
    if any(search in s.lower() for s in trade.setups):
        return True
    return search in (trade.notes or "").lower()


def select_trades(trades: Iterable[Trade], config: BacktestConfig) -> list[tuple[pd.Timestamp, Trade]]:
    """Closed trades passing every filter, in entry order."""
    start, end = _date_window(config)
    return [
        (ts, t)
        for ts, t in sort_by_entry(trades)
        if t.status == TradeStatus.CLOSED
        and start <= ts <= end
        and matches_strategy(t, config)
        and matches_side(t, config)
        and matches_condition(t, config)
    ]


def filter_trades(
    trades: Iterable[Trade],
    search: str = "",
    asset_class: Optional[AssetClass] = None,
    trade_type: Optional[TradeType] = None,
    strategy: str = "",
    event: str = "",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Trade]:
    """Trade-list filter. Input order is kept; empty criteria match everything.

    ``search`` is a case-insensitive substring of the symbol or any setup.
    ``strategy`` and ``event`` must equal a tag exactly. With a date bound set,
    trades without a usable entry date are left out.
    """
    needle = search.strip().lower()
    start, end = day_bounds(start_date, end_date)
    selected = []
    for t in trades:
        if needle and needle not in t.symbol.lower() and not any(needle in s.lower() for s in t.setups):
            continue
        if asset_class and t.asset_class != asset_class:
            continue
        if trade_type and t.trade_type != trade_type:
            continue
        if strategy and strategy not in t.strategies:
            continue
        if event and event not in t.market_events:
            continue
        if start is not None or end is not None:
            ts = parse_timestamp(t.entry_date)
            if ts is None:
                continue
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue
        selected.append(t)
    return selected


def run_backtest(trades: Iterable[Trade], config: BacktestConfig) -> BacktestResult:
    """
    Replay the matching trades in entry order against ``initial_capital``.

    Returns a result with only ``strategy_name`` and ``count`` when nothing
    matches, so "no data" stays distinguishable from "flat P/L".
    """
    selected = select_trades(trades, config)
    if not selected:
        return BacktestResult(strategy_name=config.display_name, count=0)

    initial = config.initial_capital
    if initial <= 0:
        logger.warning("Backtest started with non-positive capital %s; drawdown is clamped", initial)

    equity = initial
    peak = initial
    max_dd = 0.0
    total_pnl = 0.0
    wins = 0
    gross_profit = 0.0
    gross_loss = 0.0
    curve = [EquityPoint(date=config.start_date.isoformat(), equity=round(initial, 2))]

    for ts, trade in selected:
        pnl = trade_pnl(trade)
        total_pnl += pnl
        equity += pnl
        if equity > peak:
            peak = equity
        # Drawdown is only meaningful against a positive peak
        if peak > 0:
            dd = (peak - equity) / peak * 100
            if dd > max_dd:
                max_dd = dd
        if pnl > 0:
            wins += 1
            gross_profit += pnl
        else:
            gross_loss += abs(pnl)
        curve.append(EquityPoint(date=ts.strftime("%Y-%m-%d"), equity=round(equity, 2)))

    count = len(selected)
    if gross_loss > 0:
        pf = gross_profit / gross_loss
    else:
        pf = BACKTEST_NO_LOSS_PROFIT_FACTOR if gross_profit > 0 else 0.0

    return BacktestResult(
        strategy_name=config.display_name,
        count=count,
        total_pnl=round(total_pnl, 2),
        win_rate=round(wins / count * 100, 2),
        profit_factor=round(pf, 2),
        max_drawdown=round(max_dd, 2),
        equity_curve=curve,
    )
