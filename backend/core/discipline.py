"""
Discipline tracking: rule commitments plus progress measures derived from
the trade log.
"""
import uuid
from typing import Iterable

from backend.core.aggregator import parse_timestamp, trade_pnl
from backend.models.trade import Trade, coerce_number

DEFAULT_RULES = [
    "Never risk more than 1% per trade",
    "Wait for candle close before entry",
]

ROADMAP_LEVELS = [
    {"id": 1, "name": "The Observer", "min_trades": 0, "min_win_rate": 0,
     "description": "Your focus is purely on journaling and pattern recognition."},
    {"id": 2, "name": "The Apprentice", "min_trades": 10, "min_win_rate": 35,
     "description": "Execution over 10 trades with basic win-rate targets."},
    {"id": 3, "name": "The Specialist", "min_trades": 50, "min_win_rate": 45,
     "description": "Consistent process application over 50 data points."},
    {"id": 4, "name": "The Professional", "min_trades": 100, "min_win_rate": 55,
     "description": "Mastery. Psychology is decoupled from P/L."},
]

BROKE_RULES_MISTAKE = "Broke My Rules"
CONSISTENCY_CHALLENGE = "ch-1"
RISK_CHALLENGE = "ch-2"

DEFAULT_CHALLENGES = [
    {"id": CONSISTENCY_CHALLENGE, "title": "Consistency King",
     "description": 'Log 15 trades with zero "Broke My Rules" mistakes.',
     "goal": 15, "current": 0, "unit": "trades", "reward": "Elite Badge",
     "is_accepted": False, "is_completed": False},
    {"id": RISK_CHALLENGE, "title": "Risk Master",
     "description": "Complete 10 trades with a Reward:Risk ratio >= 2.0.",
     "goal": 10, "current": 0, "unit": "wins", "reward": "Sniper Trophy",
     "is_accepted": False, "is_completed": False},
]


def default_rules(user_id: str) -> list[dict]:
    return [
        {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "text": text,
            "streak": 0,
            "committed_today": False,
            "is_active": True,
        }
        for text in DEFAULT_RULES
    ]


def default_challenges(user_id: str) -> list[dict]:
    return [{**c, "user_id": user_id} for c in DEFAULT_CHALLENGES]


def toggle_rule(rule: dict) -> dict:
    """Flip today's commitment; committing extends the streak, undoing shortens it."""
    committing = not rule.get("committed_today", False)
    streak = rule.get("streak") or 0
    streak = streak + 1 if committing else max(0, streak - 1)
    return {**rule, "committed_today": committing, "streak": streak}


def current_level(trades: Iterable[Trade]) -> dict:
    trades = list(trades)
    count = len(trades)
    wins = sum(1 for t in trades if trade_pnl(t) > 0)
    wr = wins / count * 100 if count else 0.0
    reached = [
        lvl for lvl in ROADMAP_LEVELS
        if count >= lvl["min_trades"] and wr >= lvl["min_win_rate"]
    ]
    return reached[-1] if reached else ROADMAP_LEVELS[0]


def clean_streak(trades: Iterable[Trade]) -> int:
    """Most recent consecutive trades logged without breaking the rules."""
    dated = [(parse_timestamp(t.entry_date), t) for t in trades]
    dated = [(ts, t) for ts, t in dated if ts is not None]
    dated.sort(key=lambda pair: pair[0], reverse=True)
    streak = 0
    for _, t in dated:
        if BROKE_RULES_MISTAKE in t.mistakes:
            break
        streak += 1
    return streak


def high_rr_count(trades: Iterable[Trade], threshold: float = 2.0) -> int:
    # "1:2" style strings are not numbers and never count
    return sum(1 for t in trades if coerce_number(t.rr_ratio) >= threshold)


def update_challenges(challenges: list[dict], trades: Iterable[Trade]) -> list[dict]:
    trades = list(trades)
    updated = []
    for ch in challenges:
        if not ch.get("is_accepted") or ch.get("is_completed"):
            updated.append(ch)
            continue
        if ch["id"] == CONSISTENCY_CHALLENGE:
            current = clean_streak(trades)
        elif ch["id"] == RISK_CHALLENGE:
            current = high_rr_count(trades)
        else:
            current = ch.get("current", 0)
        updated.append({**ch, "current": current, "is_completed": current >= ch["goal"]})
    return updated
