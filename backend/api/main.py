"""
FastAPI backend — REST API for the trading journal.
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel, Field, ValidationError
from datetime import date
from typing import Optional, Union
import logging
import math
import uuid

logger = logging.getLogger("tradejournal")


def sanitize_for_json(obj):
    """Recursively replace NaN/Inf with None and convert numpy types for JSON."""
    import numpy as np
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [sanitize_for_json(v) for v in obj]
    elif isinstance(obj, (np.bool_,)):
        return bool(obj)
    elif isinstance(obj, (np.integer,)):
        return int(obj)
    elif isinstance(obj, (np.floating,)):
        val = float(obj)
        return None if math.isnan(val) or math.isinf(val) else val
    elif isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    return obj

from backend import database as db
from backend.core import aggregator, discipline, tools
from backend.core.backtester import filter_trades, run_backtest
from backend.core.trade_entry import calculate_net_pnl, validate_trade
from backend.models.strategy import ALL_STRATEGIES, BacktestConfig, BacktestSide, Strategy
from backend.models.trade import (
    AssetClass, MarketCondition, Mood, Trade, TradeStatus, TradeType,
)
from config.settings import settings

app = FastAPI(title="Trading Journal API", version="1.0.0")

# Initialize SQLite database
db.init_db()

# ── CORS — restrict to known origins ──
_cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API-key auth (single middleware for all routes) ──
_API_KEY = settings.API_KEY


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Reject requests without a valid API key. Skips /api/health and when API_KEY is unset."""
    async def dispatch(self, request: Request, call_next):
        if _API_KEY and request.url.path != "/api/health":
            key = request.headers.get("x-api-key") or request.query_params.get("api_key")
            if key != _API_KEY:
                return JSONResponse({"detail": "Invalid or missing API key"}, status_code=401)
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

DEFAULT_USER = "local"


# ── Request/Response Models ──
class TradeRequest(BaseModel):
    symbol: str
    asset_class: AssetClass = AssetClass.EQUITY
    trade_type: TradeType = TradeType.LONG
    entry_date: str
    exit_date: Optional[str] = None
    entry_price: float = 0.0
    exit_price: float = 0.0
    quantity: float = 0.0
    stop_loss: Optional[float] = None
    target: Optional[float] = None
    fees: float = 0.0
    pnl: Optional[float] = None  # computed from the legs when omitted
    rr_ratio: Optional[Union[float, str]] = None
    status: TradeStatus = TradeStatus.CLOSED
    setups: list[str] = []
    strategies: list[str] = []
    market_condition: Optional[MarketCondition] = None
    market_events: list[str] = []
    mistakes: list[str] = []
    mood: Optional[Mood] = None
    emotions: list[str] = []
    notes: str = ""
    psychology_notes: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=0, le=5)  # 0 = not rated
    image_urls: list[str] = []


class ImportRequest(BaseModel):
    trades: list[dict]


class StrategyRequest(BaseModel):
    name: str
    description: str = ""
    timeframe: Optional[str] = "Intraday"
    entry_rules: str = ""
    exit_rules: str = ""
    stop_loss_logic: str = ""
    take_profit_logic: str = ""
    risk_management: str = ""


class BacktestRequest(BaseModel):
    strategy_name: str = ALL_STRATEGIES
    start_date: date
    end_date: date
    side: BacktestSide = BacktestSide.ALL
    condition: str = ""
    initial_capital: float = Field(default=settings.DEFAULT_INITIAL_CAPITAL, gt=0)


class RuleRequest(BaseModel):
    id: Optional[str] = None
    text: str
    streak: int = 0
    committed_today: bool = False
    is_active: bool = True


class PositionSizeRequest(BaseModel):
    account_balance: float = 100000.0
    risk_percent: float = 1.0
    entry_price: float
    stop_loss: float


class PivotRequest(BaseModel):
    high: float
    low: float
    close: float


def _load_trades(user_id: str) -> list[Trade]:
    trades = []
    for row in db.list_trades(user_id):
        try:
            trades.append(Trade(**row))
        except ValidationError as e:
            logger.warning("Skipping unreadable trade %s: %s", row.get("id"), e)
    return trades


# ──────────────────────────────────────
# TRADE ENDPOINTS
# ──────────────────────────────────────

@app.get("/api/trades")
def list_trades_endpoint(
    user_id: str = DEFAULT_USER,
    search: str = "",
    asset_class: Optional[AssetClass] = None,
    trade_type: Optional[TradeType] = None,
    strategy: str = "",
    event: str = "",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    trades = filter_trades(
        _load_trades(user_id), search, asset_class, trade_type,
        strategy, event, start_date, end_date,
    )
    return [t.model_dump(mode="json") for t in trades]


@app.post("/api/trades")
def add_trade_endpoint(req: TradeRequest, user_id: str = DEFAULT_USER):
    data = req.model_dump()
    errors = validate_trade(data)
    if errors:
        raise HTTPException(status_code=400, detail=errors)
    if data["pnl"] is None:
        data["pnl"] = calculate_net_pnl(
            req.trade_type, req.entry_price, req.exit_price, req.quantity, req.fees
        )
    trade = Trade(**data, id=str(uuid.uuid4()), user_id=user_id)
    return db.save_trade(trade.model_dump(mode="json"))


@app.get("/api/trades/{trade_id}")
def get_trade_endpoint(trade_id: str):
    trade = db.get_trade(trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade


@app.delete("/api/trades/{trade_id}")
def delete_trade_endpoint(trade_id: str):
    if not db.delete_trade(trade_id):
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"success": True}


@app.post("/api/trades/import")
def import_trades_endpoint(req: ImportRequest, user_id: str = DEFAULT_USER):
    try:
        trades = [
            Trade(**{**t, "id": t.get("id") or str(uuid.uuid4()), "user_id": user_id})
            for t in req.trades
        ]
    except ValidationError as e:
        logger.error("Trade import rejected: %s", e)
        raise HTTPException(status_code=400, detail="Import contains invalid trades")
    count = db.import_trades(user_id, [t.model_dump(mode="json") for t in trades])
    return {"imported": count}


@app.get("/api/export")
def export_endpoint(user_id: str = DEFAULT_USER):
    return db.export_user_data(user_id)


@app.post("/api/data/demo")
def load_demo_trades(user_id: str = DEFAULT_USER):
    from backend.seed_trades import generate_demo_trades
    trades = generate_demo_trades(user_id)
    count = db.import_trades(user_id, [t.model_dump(mode="json") for t in trades])
    return {"imported": count}


# ──────────────────────────────────────
# STRATEGY ENDPOINTS
# ──────────────────────────────────────

@app.get("/api/strategies")
def list_strategies_endpoint(user_id: str = DEFAULT_USER):
    return db.list_strategies(user_id)


@app.get("/api/strategies/names")
def strategy_names_endpoint(user_id: str = DEFAULT_USER):
    """Names offered in the backtest picker: saved strategies plus trade tags."""
    return aggregator.strategy_names(db.list_strategies(user_id), _load_trades(user_id))


@app.post("/api/strategies")
def create_strategy_endpoint(req: StrategyRequest, user_id: str = DEFAULT_USER):
    try:
        strategy = Strategy(**req.model_dump(), user_id=user_id)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Strategy Name is required.")
    return db.save_strategy(strategy.model_dump())


@app.get("/api/strategies/{strategy_id}")
def get_strategy_endpoint(strategy_id: str):
    s = db.get_strategy(strategy_id)
    if not s:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return s


@app.put("/api/strategies/{strategy_id}")
def update_strategy_endpoint(strategy_id: str, req: StrategyRequest):
    try:
        strategy = Strategy(**req.model_dump())
    except ValidationError:
        raise HTTPException(status_code=400, detail="Strategy Name is required.")
    updated = db.update_strategy(strategy_id, strategy.model_dump())
    if not updated:
        raise HTTPException(status_code=404, detail="Strategy not found")
    return updated


@app.delete("/api/strategies/{strategy_id}")
def delete_strategy_endpoint(strategy_id: str):
    if not db.delete_strategy(strategy_id):
        raise HTTPException(status_code=404, detail="Strategy not found")
    return {"success": True}


# ──────────────────────────────────────
# ANALYTICS ENDPOINTS
# ──────────────────────────────────────

@app.get("/api/analytics/dashboard")
def dashboard_endpoint(user_id: str = DEFAULT_USER):
    trades = _load_trades(user_id)
    stats = aggregator.dashboard_stats(trades, db.get_rules(user_id))
    equity = aggregator.cumulative_equity(aggregator.closed_trades(trades), date_format="%b %d")
    return {"stats": stats, "equity_curve": equity}


@app.get("/api/analytics/setups")
def setups_endpoint(user_id: str = DEFAULT_USER, field: str = "setups"):
    if field not in ("setups", "strategies", "mistakes", "market_events", "emotions"):
        raise HTTPException(status_code=400, detail=f"Unknown tag field: {field}")
    breakdown = aggregator.tag_breakdown(_load_trades(user_id), field)
    return [{"name": name, "value": round(value, 2)} for name, value in breakdown.items()]


@app.get("/api/analytics/equity")
def equity_endpoint(user_id: str = DEFAULT_USER):
    trades = _load_trades(user_id)
    return {
        "net_pnl": round(aggregator.net_pnl(trades), 2),
        "average_win": round(aggregator.average_win(trades), 2),
        "equity_curve": aggregator.cumulative_equity(trades),
    }


@app.get("/api/analytics/calendar")
def calendar_endpoint(year: int, month: int, user_id: str = DEFAULT_USER):
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be 1-12")
    return sanitize_for_json(aggregator.calendar_month(_load_trades(user_id), year, month))


@app.get("/api/analytics/mistakes")
def mistakes_endpoint(user_id: str = DEFAULT_USER):
    counts = aggregator.mistake_counts(_load_trades(user_id))
    return [{"name": name, "count": count} for name, count in counts.items()]


# ──────────────────────────────────────
# BACKTEST ENDPOINTS
# ──────────────────────────────────────

def _backtest(req: BacktestRequest, user_id: str):
    config = BacktestConfig(**req.model_dump())
    return config, run_backtest(_load_trades(user_id), config)


@app.post("/api/backtest/run")
def run_backtest_endpoint(req: BacktestRequest, user_id: str = DEFAULT_USER):
    try:
        _, result = _backtest(req, user_id)
        return result.to_dict()
    except Exception as e:
        logger.error("Backtest run failed: %s", e)
        raise HTTPException(status_code=500, detail="Backtest failed")


@app.post("/api/backtest/explain")
def explain_backtest_endpoint(req: BacktestRequest, user_id: str = DEFAULT_USER):
    from backend.services.ai_service import explain_backtest
    config, result = _backtest(req, user_id)
    return {"result": result.to_dict(), "explanation": explain_backtest(result, config)}


# ──────────────────────────────────────
# DISCIPLINE ENDPOINTS
# ──────────────────────────────────────

@app.get("/api/discipline/rules")
def get_rules_endpoint(user_id: str = DEFAULT_USER):
    return db.get_rules(user_id)


@app.put("/api/discipline/rules")
def save_rules_endpoint(rules: list[RuleRequest], user_id: str = DEFAULT_USER):
    if any(not r.text.strip() for r in rules):
        raise HTTPException(status_code=400, detail="Rule text is required")
    return db.save_rules(user_id, [r.model_dump() for r in rules])


@app.post("/api/discipline/rules/{rule_id}/toggle")
def toggle_rule_endpoint(rule_id: str, user_id: str = DEFAULT_USER):
    rules = db.get_rules(user_id)
    if not any(r["id"] == rule_id for r in rules):
        raise HTTPException(status_code=404, detail="Rule not found")
    rules = [discipline.toggle_rule(r) if r["id"] == rule_id else r for r in rules]
    return db.save_rules(user_id, rules)


@app.get("/api/discipline/roadmap")
def roadmap_endpoint(user_id: str = DEFAULT_USER):
    level = discipline.current_level(_load_trades(user_id))
    return {"current": level, "levels": discipline.ROADMAP_LEVELS}


@app.get("/api/discipline/challenges")
def challenges_endpoint(user_id: str = DEFAULT_USER):
    challenges = discipline.update_challenges(db.get_challenges(user_id), _load_trades(user_id))
    return db.save_challenges(user_id, challenges)


@app.post("/api/discipline/challenges/{challenge_id}/accept")
def accept_challenge_endpoint(challenge_id: str, user_id: str = DEFAULT_USER):
    challenges = db.get_challenges(user_id)
    if not any(c["id"] == challenge_id for c in challenges):
        raise HTTPException(status_code=404, detail="Challenge not found")
    challenges = [{**c, "is_accepted": True} if c["id"] == challenge_id else c for c in challenges]
    challenges = discipline.update_challenges(challenges, _load_trades(user_id))
    return db.save_challenges(user_id, challenges)


# ──────────────────────────────────────
# TOOLS
# ──────────────────────────────────────

@app.post("/api/tools/position-size")
def position_size_endpoint(req: PositionSizeRequest):
    result = tools.position_size(req.account_balance, req.risk_percent, req.entry_price, req.stop_loss)
    if result is None:
        raise HTTPException(status_code=400, detail="Entry and stop loss must be positive and different")
    return result


@app.post("/api/tools/pivots")
def pivots_endpoint(req: PivotRequest):
    result = tools.pivot_points(req.high, req.low, req.close)
    if result is None:
        raise HTTPException(status_code=400, detail="High, low and close must be positive")
    return result


# ──────────────────────────────────────
# AI COACH
# ──────────────────────────────────────

@app.post("/api/coach/analyze")
def coach_endpoint(user_id: str = DEFAULT_USER):
    from backend.services.ai_service import analyze_journal_patterns
    return {"analysis": analyze_journal_patterns(_load_trades(user_id))}


@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "ai_provider": settings.AI_PROVIDER,
        "config_errors": settings.validate(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
