from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ALL_STRATEGIES = "ALL"
ALL_STRATEGIES_LABEL = "All Strategies"


class Strategy(BaseModel):
    id: Optional[str] = None
    user_id: str = ""
    name: str
    description: str = ""
    timeframe: Optional[str] = "Intraday"
    # Detailed rules (free text)
    entry_rules: str = ""
    exit_rules: str = ""
    stop_loss_logic: str = ""
    take_profit_logic: str = ""
    risk_management: str = ""
    created_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Strategy name is required")
        return v.strip()


class BacktestSide(str, Enum):
    ALL = "ALL"
    LONG = "LONG"
    SHORT = "SHORT"


class BacktestConfig(BaseModel):
    strategy_name: str = ALL_STRATEGIES
    start_date: date
    end_date: date
    side: BacktestSide = BacktestSide.ALL
    condition: str = ""
    initial_capital: float = 100000.0

    @property
    def all_strategies(self) -> bool:
        return self.strategy_name == ALL_STRATEGIES

    @property
    def display_name(self) -> str:
        return ALL_STRATEGIES_LABEL if self.all_strategies else self.strategy_name


class EquityPoint(BaseModel):
    date: str
    equity: float


class BacktestResult(BaseModel):
    strategy_name: str
    count: int = 0
    # Absent (None) when nothing matched; callers branch on count first
    total_pnl: Optional[float] = None
    win_rate: Optional[float] = None
    profit_factor: Optional[float] = None
    max_drawdown: Optional[float] = None
    equity_curve: Optional[list[EquityPoint]] = None

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
