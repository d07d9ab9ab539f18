import pytest

from backend.core.tools import pivot_points, position_size
from backend.core.trade_entry import calculate_net_pnl, validate_trade
from backend.models.trade import TradeStatus, TradeType


class TestNetPnl:
    def test_long(self):
        assert calculate_net_pnl(TradeType.LONG, 100, 110, 10, fees=5) == 95.0

    def test_short(self):
        assert calculate_net_pnl(TradeType.SHORT, 100, 110, 10, fees=5) == -105.0

    def test_rounds_to_cents(self):
        assert calculate_net_pnl("long", 1.005, 1.0101, 3) == 0.02


class TestValidateTrade:
    def test_valid_closed_trade(self):
        assert validate_trade({"symbol": "NIFTY", "entry_price": 100, "exit_price": 101}) == {}

    def test_missing_fields(self):
        errors = validate_trade({"symbol": " ", "entry_price": 0, "status": TradeStatus.CLOSED})
        assert set(errors) == {"symbol", "entry_price", "exit_price"}

    def test_open_trade_needs_no_exit(self):
        data = {"symbol": "NIFTY", "entry_price": 100, "status": TradeStatus.OPEN}
        assert validate_trade(data) == {}


class TestPositionSize:
    def test_sizing(self):
        result = position_size(100000, 1, 500, 490)
        assert result == {
            "risk_amount": 1000.0,
            "risk_per_unit": 10.0,
            "quantity": 100,
            "capital_required": 50000.0,
        }

    def test_floors_quantity(self):
        assert position_size(10000, 1, 100, 97)["quantity"] == 33

    @pytest.mark.parametrize("args", [(100000, 1, 500, 500), (0, 1, 500, 490), (100000, 1, 0, 490)])
    def test_degenerate_inputs(self, args):
        assert position_size(*args) is None


class TestPivots:
    def test_classic_floor_pivots(self):
        levels = pivot_points(110, 90, 100)
        assert levels["pp"] == 100.0
        assert levels["r1"] == 110.0
        assert levels["s1"] == 90.0
        assert levels["r2"] == 120.0
        assert levels["s2"] == 80.0
        assert levels["r3"] == 130.0
        assert levels["s3"] == 70.0

    def test_rejects_non_positive(self):
        assert pivot_points(0, 90, 100) is None
