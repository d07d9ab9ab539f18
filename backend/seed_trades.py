"""
Demo journal generator — fills an empty account with plausible trades so the
dashboard, calendar and backtester have something to show.
"""
import uuid
from datetime import datetime, timedelta

import numpy as np

from backend.core.trade_entry import calculate_net_pnl
from backend.models.trade import Trade, TradeStatus, TradeType, AssetClass, Mood

SYMBOLS = {
    "NIFTY": AssetClass.INDEX,
    "BANKNIFTY": AssetClass.INDEX,
    "RELIANCE": AssetClass.EQUITY,
    "BTCUSDT": AssetClass.CRYPTO,
}
SETUPS = ["ORB", "VWAP Bounce", "Trendline", "Pin Bar"]
STRATEGIES = ["Momentum", "Mean Reversion"]
MISTAKES = ["Chased Entry", "Moved Stop Loss", "Broke My Rules", "Oversized"]
EMOTIONS = ["FOMO", "Calm", "Revenge", "Confident"]


def generate_demo_trades(user_id: str, n: int = 40, seed: int = 42,
                         start: datetime | None = None) -> list[Trade]:
    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 1, 1, 9, 30)
    symbols = list(SYMBOLS)
    trades = []

    for i in range(n):
        symbol = symbols[int(rng.integers(len(symbols)))]
        side = TradeType.LONG if rng.random() < 0.6 else TradeType.SHORT
        entry = round(float(rng.uniform(100, 2000)), 2)
        move = float(rng.normal(0.002, 0.01)) * entry
        exit_ = round(entry + move if side == TradeType.LONG else entry - move, 2)
        quantity = int(rng.integers(10, 200))
        fees = round(float(rng.uniform(5, 40)), 2)
        entry_time = start + timedelta(days=i, minutes=int(rng.integers(0, 360)))

        trades.append(Trade(
            id=str(uuid.uuid4()),
            user_id=user_id,
            symbol=symbol,
            asset_class=SYMBOLS[symbol],
            trade_type=side,
            entry_date=entry_time.isoformat(),
            exit_date=(entry_time + timedelta(minutes=int(rng.integers(5, 240)))).isoformat(),
            entry_price=entry,
            exit_price=exit_,
            quantity=quantity,
            fees=fees,
            pnl=calculate_net_pnl(side, entry, exit_, quantity, fees),
            rr_ratio=f"1:{round(float(rng.uniform(0.5, 3.5)), 1)}",
            status=TradeStatus.CLOSED,
            setups=list(rng.choice(SETUPS, size=int(rng.integers(1, 3)), replace=False)),
            strategies=[STRATEGIES[int(rng.integers(len(STRATEGIES)))]],
            mistakes=list(rng.choice(MISTAKES, size=int(rng.integers(0, 2)), replace=False)),
            emotions=[EMOTIONS[int(rng.integers(len(EMOTIONS)))]],
            mood=list(Mood)[int(rng.integers(len(Mood)))],
            rating=int(rng.integers(1, 6)),
            notes="Demo trade",
        ))
    return trades
