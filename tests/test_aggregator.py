"""Trade aggregator: win rate, profit factor, tag breakdown, equity series."""
import itertools

import pytest

from backend.core import aggregator


class TestWinRateAndProfitFactor:
    def test_win_rate_counts_strictly_positive(self, trade_factory):
        trades = [trade_factory(pnl=p) for p in (100, 0, -50, 25)]
        assert aggregator.win_rate(trades) == 50.0

    def test_win_rate_empty_is_zero(self):
        assert aggregator.win_rate([]) == 0.0

    def test_win_rate_zero_without_winners(self, trade_factory):
        trades = [trade_factory(pnl=p) for p in (0, -1, -2)]
        assert aggregator.win_rate(trades) == 0.0

    def test_win_rate_bounds(self, trade_factory):
        for pnls in ([1], [-1], [1, -1, 2, 0]):
            wr = aggregator.win_rate([trade_factory(pnl=p) for p in pnls])
            assert 0 <= wr <= 100

    def test_profit_factor(self, scenario_trades):
        assert aggregator.profit_factor(scenario_trades) == pytest.approx(5.0)

    def test_profit_factor_no_losses_uses_sentinel(self, trade_factory):
        trades = [trade_factory(pnl=10), trade_factory(pnl=5)]
        assert aggregator.profit_factor(trades) == aggregator.DASHBOARD_NO_LOSS_PROFIT_FACTOR
        assert aggregator.profit_factor(trades, no_loss_value=100.0) == 100.0

    def test_profit_factor_all_zero(self, trade_factory):
        assert aggregator.profit_factor([]) == 0.0
        assert aggregator.profit_factor([trade_factory(pnl=0)]) == 0.0

    def test_profit_factor_only_losses(self, trade_factory):
        assert aggregator.profit_factor([trade_factory(pnl=-10)]) == 0.0


class TestAverages:
    def test_average_win(self, trade_factory):
        trades = [trade_factory(pnl=p) for p in (100, 300, -50)]
        assert aggregator.average_win(trades) == 200.0

    def test_average_win_without_winners(self, trade_factory):
        assert aggregator.average_win([trade_factory(pnl=-5)]) == 0.0

    def test_average_loss(self, trade_factory):
        trades = [trade_factory(pnl=p) for p in (100, -30, -10, 0)]
        assert aggregator.average_loss(trades) == -20.0

    def test_net_pnl_ignores_status(self, trade_factory):
        trades = [trade_factory(pnl=100), trade_factory(pnl=50, status="OPEN")]
        assert aggregator.net_pnl(trades) == 150.0


class TestRiskReward:
    @pytest.mark.parametrize("value,expected", [
        (2.5, 2.5),
        ("1:3", 3.0),
        ("1:2:4", 4.0),
        ("2", 2.0),
        ("1:abc", None),
        ("1:0", None),
        (-1, None),
        (None, None),
    ])
    def test_parse_rr(self, value, expected):
        assert aggregator.parse_rr(value) == expected

    def test_average_rr_skips_unusable(self, trade_factory):
        trades = [
            trade_factory(rr_ratio="1:2"),
            trade_factory(rr_ratio=4),
            trade_factory(rr_ratio="junk"),
            trade_factory(rr_ratio=None),
        ]
        assert aggregator.average_rr(trades) == 3.0

    def test_average_rr_none_qualify(self, trade_factory):
        assert aggregator.average_rr([trade_factory(rr_ratio="x")]) == 0.0


class TestTagBreakdown:
    def test_full_pnl_to_every_tag(self, trade_factory):
        trades = [trade_factory(pnl=500, setups=["ORB", "VWAP Bounce"])]
        assert aggregator.tag_breakdown(trades) == {"ORB": 500.0, "VWAP Bounce": 500.0}

    def test_sorted_descending(self, trade_factory):
        trades = [
            trade_factory(pnl=-200, setups=["Pin Bar"]),
            trade_factory(pnl=300, setups=["ORB"]),
            trade_factory(pnl=100, setups=["ORB", "Trendline"]),
        ]
        assert list(aggregator.tag_breakdown(trades).items()) == [
            ("ORB", 400.0), ("Trendline", 100.0), ("Pin Bar", -200.0),
        ]

    def test_other_tag_fields(self, trade_factory):
        trades = [trade_factory(pnl=-50, mistakes=["Chased Entry"])]
        assert aggregator.tag_breakdown(trades, "mistakes") == {"Chased Entry": -50.0}


class TestCumulativeEquity:
    def test_running_sum_in_entry_order(self, trade_factory):
        trades = [
            trade_factory("2024-01-10", 1000),
            trade_factory("2024-01-01", 1000),
            trade_factory("2024-01-05", -400),
        ]
        series = aggregator.cumulative_equity(trades)
        assert [p["equity"] for p in series] == [1000, 600, 1600]
        assert [p["date"] for p in series] == ["2024-01-01", "2024-01-05", "2024-01-10"]

    def test_stable_for_equal_timestamps(self, trade_factory):
        trades = [
            trade_factory("2024-01-01T10:00:00", 5, id="a"),
            trade_factory("2024-01-01T10:00:00", -3, id="b"),
            trade_factory("2024-01-01T10:00:00", 7, id="c"),
        ]
        ordered = [t.id for _, t in aggregator.sort_by_entry(trades)]
        assert ordered == ["a", "b", "c"]
        assert [p["equity"] for p in aggregator.cumulative_equity(trades)] == [5, 2, 9]

    def test_last_point_is_net_pnl_for_any_order(self, scenario_trades):
        expected = aggregator.net_pnl(scenario_trades)
        for perm in itertools.permutations(scenario_trades):
            assert aggregator.cumulative_equity(list(perm))[-1]["equity"] == expected

    def test_undated_trades_skipped(self, trade_factory):
        trades = [trade_factory("not a date", 100), trade_factory("2024-02-01", 50)]
        series = aggregator.cumulative_equity(trades)
        assert series == [{"date": "2024-02-01", "equity": 50.0}]

    def test_custom_date_format(self, trade_factory):
        series = aggregator.cumulative_equity([trade_factory("2024-03-07", 1)], "%b %d")
        assert series[0]["date"] == "Mar 07"


class TestDirtyData:
    def test_non_numeric_pnl_is_zero(self, trade_factory):
        trades = [trade_factory(pnl="oops"), trade_factory(pnl=10)]
        assert aggregator.net_pnl(trades) == 10
        assert aggregator.win_rate(trades) == 50.0

    def test_timezone_aware_dates(self, trade_factory):
        ts = aggregator.parse_timestamp("2024-01-01T10:00:00+05:30")
        assert ts.tzinfo is None
        assert ts.hour == 4 and ts.minute == 30

    def test_idempotent(self, scenario_trades):
        first = aggregator.dashboard_stats(scenario_trades)
        second = aggregator.dashboard_stats(scenario_trades)
        assert first == second
        assert aggregator.tag_breakdown(scenario_trades) == aggregator.tag_breakdown(scenario_trades)


class TestSummaries:
    def test_dashboard_stats_closed_only(self, trade_factory):
        trades = [
            trade_factory("2024-01-01", 200, rr_ratio="1:2"),
            trade_factory("2024-01-02", -100),
            trade_factory("2024-01-03", 999, status="OPEN"),
        ]
        rules = [{"committed_today": True}, {"committed_today": False}]
        stats = aggregator.dashboard_stats(trades, rules)
        assert stats["net_pnl"] == 100
        assert stats["total_trades"] == 2
        assert stats["win_rate"] == 50.0
        assert stats["profit_factor"] == 2.0
        assert stats["avg_rr"] == 2.0
        assert stats["average_winner"] == 200
        assert stats["average_loser"] == -100
        assert stats["discipline_score"] == 50.0

    def test_dashboard_stats_empty(self):
        stats = aggregator.dashboard_stats([])
        assert stats["total_trades"] == 0
        assert stats["profit_factor"] == 0.0
        assert stats["discipline_score"] == 0.0

    def test_calendar_month(self, trade_factory):
        trades = [
            trade_factory("2024-03-04T09:30:00", 100),
            trade_factory("2024-03-04T14:00:00", -40),
            trade_factory("2024-03-15", 60),
            trade_factory("2024-04-01", 500),
            trade_factory("2024-03-20", 70, status="OPEN"),
        ]
        cal = aggregator.calendar_month(trades, 2024, 3)
        assert cal["days"] == {
            4: {"pnl": 60.0, "trades": 2, "wins": 1},
            15: {"pnl": 60.0, "trades": 1, "wins": 1},
        }
        assert cal["month_pnl"] == 120.0

    def test_calendar_month_empty(self):
        assert aggregator.calendar_month([], 2024, 1)["days"] == {}

    def test_mistake_counts(self, trade_factory):
        trades = [
            trade_factory(mistakes=["Oversized"]),
            trade_factory(mistakes=["Chased Entry", "Oversized"]),
        ]
        assert list(aggregator.mistake_counts(trades).items()) == [
            ("Oversized", 2), ("Chased Entry", 1),
        ]

    def test_strategy_names(self, trade_factory):
        trades = [trade_factory(strategies=["Momentum", "Scalp"])]
        names = aggregator.strategy_names([{"name": "Breakout"}, {"name": "Momentum"}], trades)
        assert names == ["Breakout", "Momentum", "Scalp"]
