"""
SQLite persistence layer for the trading journal.
All database operations go through this module.
"""
import sqlite3
import json
import uuid
import os
from datetime import datetime, timezone

from backend.core.discipline import default_challenges, default_rules
from config.settings import settings

DB_PATH = settings.DB_PATH


def _get_connection() -> sqlite3.Connection:
    os.makedirs(os.path.dirname(os.path.abspath(DB_PATH)), exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db():
    conn = _get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS trades (
            id                TEXT PRIMARY KEY,
            user_id           TEXT NOT NULL,
            symbol            TEXT NOT NULL,
            asset_class       TEXT NOT NULL,
            trade_type        TEXT NOT NULL,
            entry_date        TEXT NOT NULL,
            exit_date         TEXT,
            entry_price       REAL NOT NULL DEFAULT 0,
            exit_price        REAL NOT NULL DEFAULT 0,
            quantity          REAL NOT NULL DEFAULT 0,
            stop_loss         REAL,
            target            REAL,
            fees              REAL NOT NULL DEFAULT 0,
            pnl               REAL NOT NULL DEFAULT 0,
            rr_ratio          TEXT,
            status            TEXT NOT NULL,
            setups            TEXT NOT NULL DEFAULT '[]',
            strategies        TEXT NOT NULL DEFAULT '[]',
            market_condition  TEXT,
            market_events     TEXT NOT NULL DEFAULT '[]',
            mistakes          TEXT NOT NULL DEFAULT '[]',
            mood              TEXT,
            emotions          TEXT NOT NULL DEFAULT '[]',
            notes             TEXT NOT NULL DEFAULT '',
            psychology_notes  TEXT,
            rating            INTEGER,
            image_urls        TEXT NOT NULL DEFAULT '[]',
            created_at        TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_trades_user_entry ON trades(user_id, entry_date);
        CREATE TABLE IF NOT EXISTS strategies (
            id                TEXT PRIMARY KEY,
            user_id           TEXT NOT NULL,
            name              TEXT NOT NULL,
            description       TEXT NOT NULL DEFAULT '',
            timeframe         TEXT,
            entry_rules       TEXT NOT NULL DEFAULT '',
            exit_rules        TEXT NOT NULL DEFAULT '',
            stop_loss_logic   TEXT NOT NULL DEFAULT '',
            take_profit_logic TEXT NOT NULL DEFAULT '',
            risk_management   TEXT NOT NULL DEFAULT '',
            created_at        TEXT NOT NULL,
            updated_at        TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS rules (
            id                TEXT PRIMARY KEY,
            user_id           TEXT NOT NULL,
            text              TEXT NOT NULL,
            streak            INTEGER NOT NULL DEFAULT 0,
            committed_today   INTEGER NOT NULL DEFAULT 0,
            is_active         INTEGER NOT NULL DEFAULT 1
        );
        CREATE TABLE IF NOT EXISTS challenges (
            user_id           TEXT NOT NULL,
            challenge_id      TEXT NOT NULL,
            data              TEXT NOT NULL,
            PRIMARY KEY (user_id, challenge_id)
        );
    """)
    conn.close()


# ── Trade CRUD ──────────────────────────────────────────────

_TRADE_LIST_COLUMNS = ("setups", "strategies", "market_events", "mistakes", "emotions", "image_urls")


def _encode_rr(value):
    return None if value is None else json.dumps(value)


def _decode_rr(value):
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _row_to_trade(row: sqlite3.Row) -> dict:
    trade = {
        "id": row["id"],
        "user_id": row["user_id"],
        "symbol": row["symbol"],
        "asset_class": row["asset_class"],
        "trade_type": row["trade_type"],
        "entry_date": row["entry_date"],
        "exit_date": row["exit_date"],
        "entry_price": row["entry_price"],
        "exit_price": row["exit_price"],
        "quantity": row["quantity"],
        "stop_loss": row["stop_loss"],
        "target": row["target"],
        "fees": row["fees"],
        "pnl": row["pnl"],
        "rr_ratio": _decode_rr(row["rr_ratio"]),
        "status": row["status"],
        "market_condition": row["market_condition"],
        "mood": row["mood"],
        "notes": row["notes"],
        "psychology_notes": row["psychology_notes"],
        "rating": row["rating"],
    }
    for col in _TRADE_LIST_COLUMNS:
        trade[col] = json.loads(row[col] or "[]")
    return trade


def _trade_params(trade: dict, now: str) -> tuple:
    return (
        trade["id"],
        trade["user_id"],
        trade["symbol"],
        trade["asset_class"],
        trade["trade_type"],
        trade["entry_date"],
        trade.get("exit_date"),
        trade.get("entry_price", 0),
        trade.get("exit_price", 0),
        trade.get("quantity", 0),
        trade.get("stop_loss"),
        trade.get("target"),
        trade.get("fees", 0),
        trade.get("pnl", 0),
        _encode_rr(trade.get("rr_ratio")),
        trade["status"],
        json.dumps(trade.get("setups") or []),
        json.dumps(trade.get("strategies") or []),
        trade.get("market_condition"),
        json.dumps(trade.get("market_events") or []),
        json.dumps(trade.get("mistakes") or []),
        trade.get("mood"),
        json.dumps(trade.get("emotions") or []),
        trade.get("notes") or "",
        trade.get("psychology_notes"),
        trade.get("rating"),
        json.dumps(trade.get("image_urls") or []),
        now,
    )


_INSERT_TRADE = """INSERT INTO trades
    (id, user_id, symbol, asset_class, trade_type, entry_date, exit_date,
     entry_price, exit_price, quantity, stop_loss, target, fees, pnl, rr_ratio,
     status, setups, strategies, market_condition, market_events, mistakes,
     mood, emotions, notes, psychology_notes, rating, image_urls, created_at)
    VALUES (?,?,?,?,?,?,?, ?,?,?,?,?,?,?,?, ?,?,?,?,?,?, ?,?,?,?,?,?,?)"""


def save_trade(trade: dict) -> dict:
    """Insert a trade; ``trade`` is a JSON-mode dump of ``Trade``."""
    now = datetime.now(timezone.utc).isoformat()
    trade = {**trade, "id": trade.get("id") or str(uuid.uuid4())}
    conn = _get_connection()
    conn.execute(_INSERT_TRADE, _trade_params(trade, now))
    conn.commit()
    conn.close()
    return trade


def import_trades(user_id: str, trades: list[dict]) -> int:
    """Bulk insert under ``user_id`` with fresh ids. Returns the number stored."""
    now = datetime.now(timezone.utc).isoformat()
    rows = [
        _trade_params({**t, "id": str(uuid.uuid4()), "user_id": user_id}, now)
        for t in trades
    ]
    conn = _get_connection()
    with conn:
        conn.executemany(_INSERT_TRADE, rows)
    conn.close()
    return len(rows)


def list_trades(user_id: str) -> list[dict]:
    conn = _get_connection()
    rows = conn.execute(
        "SELECT * FROM trades WHERE user_id = ? ORDER BY entry_date DESC",
        (user_id,),
    ).fetchall()
    conn.close()
    return [_row_to_trade(r) for r in rows]


def get_trade(trade_id: str) -> dict | None:
    conn = _get_connection()
    row = conn.execute("SELECT * FROM trades WHERE id = ?", (trade_id,)).fetchone()
    conn.close()
    return _row_to_trade(row) if row else None


def delete_trade(trade_id: str) -> bool:
    conn = _get_connection()
    cursor = conn.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted


# ── Strategy CRUD ──────────────────────────────────────────────


def _row_to_strategy(row: sqlite3.Row) -> dict:
    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "name": row["name"],
        "description": row["description"],
        "timeframe": row["timeframe"],
        "entry_rules": row["entry_rules"],
        "exit_rules": row["exit_rules"],
        "stop_loss_logic": row["stop_loss_logic"],
        "take_profit_logic": row["take_profit_logic"],
        "risk_management": row["risk_management"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def save_strategy(strategy: dict) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    strategy_id = strategy.get("id") or str(uuid.uuid4())
    created_at = strategy.get("created_at") or now
    conn = _get_connection()
    conn.execute(
        """INSERT INTO strategies
           (id, user_id, name, description, timeframe, entry_rules, exit_rules,
            stop_loss_logic, take_profit_logic, risk_management, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            strategy_id,
            strategy["user_id"],
            strategy["name"],
            strategy.get("description", ""),
            strategy.get("timeframe"),
            strategy.get("entry_rules", ""),
            strategy.get("exit_rules", ""),
            strategy.get("stop_loss_logic", ""),
            strategy.get("take_profit_logic", ""),
            strategy.get("risk_management", ""),
            created_at,
            now,
        ),
    )
    conn.commit()
    conn.close()
    return {**strategy, "id": strategy_id, "created_at": created_at, "updated_at": now}


def list_strategies(user_id: str) -> list[dict]:
    conn = _get_connection()
    rows = conn.execute(
        "SELECT * FROM strategies WHERE user_id = ? ORDER BY created_at",
        (user_id,),
    ).fetchall()
    conn.close()
    return [_row_to_strategy(r) for r in rows]


def get_strategy(strategy_id: str) -> dict | None:
    conn = _get_connection()
    row = conn.execute(
        "SELECT * FROM strategies WHERE id = ?", (strategy_id,)
    ).fetchone()
    conn.close()
    return _row_to_strategy(row) if row else None


def update_strategy(strategy_id: str, updates: dict) -> dict | None:
    existing = get_strategy(strategy_id)
    if not existing:
        return None
    now = datetime.now(timezone.utc).isoformat()
    fields = (
        "name", "description", "timeframe", "entry_rules", "exit_rules",
        "stop_loss_logic", "take_profit_logic", "risk_management",
    )
    conn = _get_connection()
    conn.execute(
        """UPDATE strategies
           SET name = ?, description = ?, timeframe = ?, entry_rules = ?,
               exit_rules = ?, stop_loss_logic = ?, take_profit_logic = ?,
               risk_management = ?, updated_at = ?
           WHERE id = ?""",
        (*(updates.get(f, existing[f]) for f in fields), now, strategy_id),
    )
    conn.commit()
    conn.close()
    return get_strategy(strategy_id)


def delete_strategy(strategy_id: str) -> bool:
    conn = _get_connection()
    cursor = conn.execute("DELETE FROM strategies WHERE id = ?", (strategy_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted


# ── Discipline rules ──────────────────────────────────────────────


def _row_to_rule(row: sqlite3.Row) -> dict:
    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "text": row["text"],
        "streak": row["streak"],
        "committed_today": bool(row["committed_today"]),
        "is_active": bool(row["is_active"]),
    }


def save_rules(user_id: str, rules: list[dict]) -> list[dict]:
    """Replace the user's rule set."""
    conn = _get_connection()
    with conn:
        conn.execute("DELETE FROM rules WHERE user_id = ?", (user_id,))
        conn.executemany(
            """INSERT INTO rules (id, user_id, text, streak, committed_today, is_active)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [
                (
                    r.get("id") or str(uuid.uuid4()),
                    user_id,
                    r["text"],
                    r.get("streak", 0),
                    int(bool(r.get("committed_today"))),
                    int(r.get("is_active", True)),
                )
                for r in rules
            ],
        )
    conn.close()
    return get_rules(user_id, seed=False)


def get_rules(user_id: str, seed: bool = True) -> list[dict]:
    """The user's rules; a first-time user gets the default pair."""
    conn = _get_connection()
    rows = conn.execute(
        "SELECT * FROM rules WHERE user_id = ? ORDER BY rowid", (user_id,)
    ).fetchall()
    conn.close()
    if not rows and seed:
        return save_rules(user_id, default_rules(user_id))
    return [_row_to_rule(r) for r in rows]


# ── Challenges ──────────────────────────────────────────────


def save_challenges(user_id: str, challenges: list[dict]) -> list[dict]:
    conn = _get_connection()
    with conn:
        conn.executemany(
            """INSERT INTO challenges (user_id, challenge_id, data) VALUES (?, ?, ?)
               ON CONFLICT(user_id, challenge_id) DO UPDATE SET data = excluded.data""",
            [(user_id, c["id"], json.dumps(c)) for c in challenges],
        )
    conn.close()
    return challenges


def get_challenges(user_id: str) -> list[dict]:
    conn = _get_connection()
    rows = conn.execute(
        "SELECT data FROM challenges WHERE user_id = ? ORDER BY challenge_id",
        (user_id,),
    ).fetchall()
    conn.close()
    if not rows:
        return save_challenges(user_id, default_challenges(user_id))
    return [json.loads(r["data"]) for r in rows]


# ── Export ──────────────────────────────────────────────


def export_user_data(user_id: str) -> dict:
    return {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "trades": list_trades(user_id),
        "strategies": list_strategies(user_id),
    }
