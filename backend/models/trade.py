from pydantic import BaseModel, Field, field_validator
from typing import Optional, Union
from enum import Enum
import math


class TradeType(str, Enum):
    LONG = "long"
    SHORT = "short"

    @classmethod
    def _missing_(cls, value):
        # Journals exported from the browser app use "Buy (Long)" / "Sell (Short)"
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("buy", "buy (long)"):
                return cls.LONG
            if text in ("sell", "sell (short)"):
                return cls.SHORT
            for member in cls:
                if member.value == text:
                    return member
        return None


class AssetClass(str, Enum):
    EQUITY = "Equity"
    INDEX = "Index"
    FUTURES = "Futures"
    OPTIONS = "Options"
    CRYPTO = "Crypto"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    BREAK_EVEN = "BREAK_EVEN"


class MarketCondition(str, Enum):
    TRENDING_STRONG = "Trending (Strong)"
    TRENDING_MILD = "Trending (Mild)"
    RANGE_BOUND = "Range Bound"
    CHOPPY = "Choppy/Volatile"


class Mood(str, Enum):
    NEUTRAL = "Neutral"
    STRESSED = "Stressed"
    EXCITED = "Excited"
    BORED = "Bored"
    DISTRACTED = "Distracted"


def coerce_number(value, default: float = 0.0) -> float:
    """Best-effort float conversion; anything unusable becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


class Trade(BaseModel):
    id: str
    user_id: str = ""
    symbol: str
    asset_class: AssetClass = AssetClass.EQUITY
    trade_type: TradeType = TradeType.LONG
    # Execution
    entry_date: str
    exit_date: Optional[str] = None
    entry_price: float = 0.0
    exit_price: float = 0.0
    quantity: float = 0.0
    stop_loss: Optional[float] = None
    target: Optional[float] = None
    # Financials
    fees: float = 0.0
    pnl: float = 0.0  # net, supplied by the entry workflow
    rr_ratio: Optional[Union[float, str]] = None  # 2.5 or "1:2.5"
    status: TradeStatus = TradeStatus.CLOSED
    # Context
    setups: list[str] = Field(default_factory=list)
    strategies: list[str] = Field(default_factory=list)
    market_condition: Optional[MarketCondition] = None
    market_events: list[str] = Field(default_factory=list)
    mistakes: list[str] = Field(default_factory=list)
    # Psychology
    mood: Optional[Mood] = None
    emotions: list[str] = Field(default_factory=list)
    notes: str = ""
    psychology_notes: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    # Media
    image_urls: list[str] = Field(default_factory=list)

    @field_validator("pnl", "fees", "entry_price", "exit_price", "quantity", mode="before")
    @classmethod
    def _lenient_number(cls, v):
        return coerce_number(v)

    @field_validator("stop_loss", "target", mode="before")
    @classmethod
    def _optional_number(cls, v):
        if v is None or v == "":
            return None
        number = coerce_number(v, default=math.nan)
        return None if math.isnan(number) else number

    @field_validator("setups", "strategies", "market_events", "mistakes", "emotions", "image_urls", mode="before")
    @classmethod
    def _dedupe_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return list(dict.fromkeys(str(item) for item in v))

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, v):
        return v or ""

    @field_validator("rating", mode="before")
    @classmethod
    def _unrated(cls, v):
        # 0 / blank means "not rated"
        return v or None

    @field_validator("trade_type", mode="before")
    @classmethod
    def _trade_type_alias(cls, v):
        return v if isinstance(v, TradeType) else TradeType(v)
