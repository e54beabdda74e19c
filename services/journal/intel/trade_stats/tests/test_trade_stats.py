"""
Trade Stats: Unit Tests

Covers:
    - Numeric primitives (coercion, optional numbers, profit factor variant)
    - Stats engine (partition, sums, ratios, R-multiple mean, streaks)
    - Equity curve (rank, running sum, day truncation)
    - Grouping (symbol sort, strategy order, R-multiple exclusion)
    - Edge cases (empty, all winners, all losers, breakeven runs)

All tests use deterministic data. No randomness. No IO.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from .. import (
    build_equity_curve,
    compute_strategy_performance,
    compute_symbol_performance,
    compute_trading_stats,
)
from ..models import ClosedTrade, StreakType, TradingStats
from ..numeric import (
    ABSENT,
    UNBOUNDED,
    Finite,
    Present,
    RPolicy,
    mean_of,
    optional_number,
    profit_factor,
    profit_factor_fields,
    to_float,
)
from ..stats_engine import StatsEngine, StreakState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2025, 3, 3, 15, 30, 0, tzinfo=timezone.utc)


def _make_trade(
    idx: int,
    net_pnl: float,
    r_multiple=None,
    symbol: str = "EURUSD",
    strategy_id=None,
    fees: float = 0.0,
    gross_pnl=None,
) -> ClosedTrade:
    """Factory for deterministic test trades, one day apart."""
    return ClosedTrade(
        trade_id=f"t_{idx}",
        net_pnl=net_pnl,
        symbol=symbol,
        exit_date=BASE_TIME + timedelta(days=idx),
        fees=fees,
        gross_pnl=gross_pnl,
        r_multiple=r_multiple,
        strategy_id=strategy_id,
    )


def _make_trade_set(pnls: list[float], **kwargs) -> list[ClosedTrade]:
    return [_make_trade(i, p, **kwargs) for i, p in enumerate(pnls)]


# ---------------------------------------------------------------------------
# 1. Numeric primitives
# ---------------------------------------------------------------------------

class TestNumeric:
    def test_to_float_coerces_garbage_to_zero(self):
        assert to_float(None) == 0.0
        assert to_float("abc") == 0.0
        assert to_float(float("nan")) == 0.0
        assert to_float(float("inf")) == 0.0
        assert to_float(" 12.5 ") == 12.5
        assert to_float(-3) == -3.0

    def test_optional_number(self):
        assert optional_number(None) is ABSENT
        assert optional_number("") is ABSENT
        assert optional_number("x") is ABSENT
        assert optional_number(float("nan")) is ABSENT
        assert optional_number("1.5") == Present(1.5)
        assert optional_number(0) == Present(0.0)

    def test_mean_policies(self):
        values = [Present(2.0), ABSENT, Present(4.0), ABSENT]
        assert mean_of(values, RPolicy.COERCE_TO_ZERO) == pytest.approx(1.5)
        assert mean_of(values, RPolicy.EXCLUDE) == pytest.approx(3.0)

    def test_mean_all_absent_is_zero(self):
        assert mean_of([ABSENT, ABSENT], RPolicy.EXCLUDE) == 0.0
        assert mean_of([], RPolicy.COERCE_TO_ZERO) == 0.0

    def test_profit_factor_variants(self):
        assert profit_factor(300.0, 100.0) == Finite(3.0)
        assert profit_factor(150.0, 0.0) is UNBOUNDED
        assert profit_factor(0.0, 0.0) == Finite(0.0)
        assert profit_factor(0.0, 50.0) == Finite(0.0)

    def test_profit_factor_serialization(self):
        assert profit_factor_fields(UNBOUNDED) == {
            "profit_factor": None,
            "profit_factor_unbounded": True,
        }
        assert profit_factor_fields(Finite(2.0)) == {
            "profit_factor": 2.0,
            "profit_factor_unbounded": False,
        }


class TestClosedTrade:
    def test_malformed_numerics_coerced(self):
        t = ClosedTrade(net_pnl="oops", symbol="X", fees=None, r_multiple="n/a")
        assert t.net_pnl == 0.0
        assert t.fees == 0.0
        assert t.r_multiple is ABSENT
        assert t.gross_pnl is ABSENT

    def test_raw_optionals_wrapped(self):
        t = ClosedTrade(net_pnl=10, symbol="X", gross_pnl=12.0, r_multiple=1.2)
        assert t.gross_pnl == Present(12.0)
        assert t.r_multiple == Present(1.2)


# ---------------------------------------------------------------------------
# 2. Stats engine
# ---------------------------------------------------------------------------

class TestStatsEngine:
    def test_empty_input(self):
        stats = compute_trading_stats([])
        assert stats == TradingStats.empty()
        assert stats.total_trades == 0
        assert stats.win_rate == 0.0
        assert stats.profit_factor == Finite(0.0)
        assert stats.streak_type is StreakType.NONE
        assert stats.current_streak == 0

    def test_partition_counts(self):
        stats = compute_trading_stats(_make_trade_set([100, -50, 0, 25, -10]))
        assert stats.total_trades == 5
        assert stats.closed_trades == 5
        assert stats.open_trades == 0
        assert stats.winning_trades == 2
        assert stats.losing_trades == 2
        assert stats.breakeven_trades == 1
        assert stats.win_rate == pytest.approx(40.0)

    def test_sums_and_averages(self):
        trades = [
            _make_trade(0, 100.0, fees=2.0, gross_pnl=102.0),
            _make_trade(1, -40.0, fees=1.0, gross_pnl=-39.0),
            _make_trade(2, -20.0, fees=1.5),
            _make_trade(3, 60.0),
        ]
        stats = compute_trading_stats(trades)
        assert stats.net_pnl == pytest.approx(100.0)
        assert stats.total_fees == pytest.approx(4.5)
        # gross falls back to net where absent: 102 - 39 - 20 + 60
        assert stats.total_pnl == pytest.approx(103.0)
        assert stats.avg_win == pytest.approx(80.0)
        assert stats.avg_loss == pytest.approx(30.0)
        assert stats.largest_win == pytest.approx(100.0)
        assert stats.largest_loss == pytest.approx(-40.0)
        assert stats.profit_factor == Finite(pytest.approx(160.0 / 60.0))
        assert stats.expectancy == pytest.approx(25.0)

    def test_no_losses_gives_zero_avg_loss(self):
        stats = compute_trading_stats(_make_trade_set([100, 50]))
        assert stats.avg_loss == 0.0
        assert stats.largest_loss == 0.0

    def test_profit_factor_unbounded_when_no_losses(self):
        stats = compute_trading_stats(_make_trade_set([100, 50]))
        assert stats.profit_factor is UNBOUNDED
        d = stats.to_dict()
        assert d["profit_factor"] is None
        assert d["profit_factor_unbounded"] is True

    def test_profit_factor_all_breakeven(self):
        stats = compute_trading_stats(_make_trade_set([0, 0]))
        assert stats.profit_factor == Finite(0.0)

    def test_avg_r_multiple_coerces_absent_to_zero(self):
        trades = [
            _make_trade(0, 100, r_multiple=2.0),
            _make_trade(1, -50, r_multiple=-1.0),
            _make_trade(2, 30, r_multiple=None),
            _make_trade(3, 10, r_multiple="garbage"),
        ]
        stats = compute_trading_stats(trades)
        assert stats.avg_r_multiple == pytest.approx(1.0 / 4)

    def test_pnl_conservation(self):
        pnls = [0.1, 0.2, -0.3, 1234.56, -789.01, 0.07]
        stats = compute_trading_stats(_make_trade_set(pnls))
        assert math.isclose(stats.net_pnl, sum(pnls), abs_tol=1e-9)

    def test_win_rate_bounds(self):
        for pnls in ([1], [-1], [0], [1, -1, 0], [5, 5, 5]):
            stats = compute_trading_stats(_make_trade_set(pnls))
            assert 0.0 <= stats.win_rate <= 100.0
            assert (stats.win_rate == 0.0) == (stats.winning_trades == 0)

    def test_nan_record_does_not_raise(self):
        trades = [_make_trade(0, float("nan")), _make_trade(1, 10.0)]
        stats = compute_trading_stats(trades)
        assert stats.net_pnl == pytest.approx(10.0)
        assert stats.breakeven_trades == 1

    def test_to_dict_shape(self):
        d = compute_trading_stats(_make_trade_set([10, -5])).to_dict()
        assert d["streak_type"] == "losing"
        assert d["profit_factor"] == pytest.approx(2.0)
        assert d["profit_factor_unbounded"] is False
        assert "winning_trades" in d


# ---------------------------------------------------------------------------
# 3. Streaks
# ---------------------------------------------------------------------------

class TestStreaks:
    def test_reference_sequence(self):
        """[W, W, L, W, W, W, L, L] → best 3, worst 2, current 2 losing."""
        stats = compute_trading_stats(
            _make_trade_set([10, 20, -5, 30, 15, 5, -10, -20])
        )
        assert stats.best_streak == 3
        assert stats.worst_streak == 2
        assert stats.current_streak == 2
        assert stats.streak_type is StreakType.LOSING

    def test_final_winning_run_counts_as_best(self):
        stats = compute_trading_stats(_make_trade_set([-1, 1, 1, 1, 1]))
        assert stats.best_streak == 4
        assert stats.worst_streak == 1
        assert stats.current_streak == 4
        assert stats.streak_type is StreakType.WINNING

    def test_breakeven_extends_losing_run(self):
        stats = compute_trading_stats(_make_trade_set([5, -1, 0, 0, -2, 5]))
        assert stats.worst_streak == 4
        assert stats.best_streak == 1
        assert stats.current_streak == 1
        assert stats.streak_type is StreakType.WINNING

    def test_all_breakeven_is_losing_type(self):
        stats = compute_trading_stats(_make_trade_set([0, 0, 0]))
        assert stats.streak_type is StreakType.LOSING
        assert stats.current_streak == 3
        assert stats.worst_streak == 3
        assert stats.best_streak == 0

    def test_order_is_significant(self):
        trades = _make_trade_set([1, -1, 1, -1])
        forward = StatsEngine.compute_streaks(trades)
        reordered = StatsEngine.compute_streaks([trades[0], trades[2], trades[1], trades[3]])
        assert forward.best_streak == 1
        assert reordered.best_streak == 2

    def test_fold_state_is_immutable(self):
        initial = StreakState()
        StatsEngine.compute_streaks(_make_trade_set([1, 1, -1]))
        assert initial == StreakState()
        with pytest.raises(Exception):
            initial.run_length = 5


# ---------------------------------------------------------------------------
# 4. Equity curve
# ---------------------------------------------------------------------------

class TestEquityCurve:
    def test_empty(self):
        assert build_equity_curve([]) == []

    def test_rank_and_running_sum(self):
        pnls = [100.0, -40.0, 25.5, -10.25, 60.0]
        curve = build_equity_curve(_make_trade_set(pnls))
        assert [p.trade_count for p in curve] == [1, 2, 3, 4, 5]
        assert curve[0].cumulative_pnl == curve[0].pnl
        for i in range(1, len(curve)):
            assert curve[i].cumulative_pnl == curve[i - 1].cumulative_pnl + curve[i].pnl
        assert curve[-1].cumulative_pnl == pytest.approx(sum(pnls))

    def test_date_truncated_to_day(self):
        curve = build_equity_curve([_make_trade(0, 10.0)])
        assert curve[0].date == "2025-03-03"

    def test_missing_exit_date_gives_empty_date(self):
        curve = build_equity_curve([ClosedTrade(net_pnl=5.0, symbol="X")])
        assert curve[0].date == ""
        assert curve[0].trade_count == 1

    def test_does_not_resort(self):
        trades = _make_trade_set([1.0, 2.0, 3.0])
        curve = build_equity_curve(list(reversed(trades)))
        assert [p.pnl for p in curve] == [3.0, 2.0, 1.0]
        assert [p.date for p in curve] == ["2025-03-05", "2025-03-04", "2025-03-03"]


# ---------------------------------------------------------------------------
# 5. Grouping
# ---------------------------------------------------------------------------

class TestGrouping:
    def test_single_symbol_idempotence(self):
        pnls = [100, -30, 45, 0, -12]
        trades = _make_trade_set(pnls, symbol="BTCUSD")
        groups = compute_symbol_performance(trades)
        assert len(groups) == 1
        assert groups[0].symbol == "BTCUSD"
        assert groups[0].trades == len(pnls)
        assert groups[0].total_pnl == pytest.approx(compute_trading_stats(trades).net_pnl)

    def test_symbols_sorted_by_total_pnl_desc(self):
        trades = [
            _make_trade(0, -100, symbol="GBPUSD"),
            _make_trade(1, 300, symbol="XAUUSD"),
            _make_trade(2, 50, symbol="EURUSD"),
            _make_trade(3, 20, symbol="GBPUSD"),
        ]
        groups = compute_symbol_performance(trades)
        assert [g.symbol for g in groups] == ["XAUUSD", "EURUSD", "GBPUSD"]
        gbp = groups[2]
        assert gbp.trades == 2
        assert gbp.win_rate == pytest.approx(50.0)
        assert gbp.total_pnl == pytest.approx(-80.0)

    def test_r_multiple_asymmetry(self):
        """Absent R pulls the global mean down but is dropped per symbol."""
        trades = [
            _make_trade(0, 100, r_multiple=2.0, symbol="EURUSD"),
            _make_trade(1, 50, r_multiple=None, symbol="EURUSD"),
        ]
        stats = compute_trading_stats(trades)
        groups = compute_symbol_performance(trades)
        assert stats.avg_r_multiple == pytest.approx(1.0)
        assert groups[0].avg_r_multiple == pytest.approx(2.0)

    def test_group_without_any_r_is_zero(self):
        groups = compute_symbol_performance(_make_trade_set([10, 20], symbol="X"))
        assert groups[0].avg_r_multiple == 0.0

    def test_strategies_keep_source_order(self):
        trades = [
            _make_trade(0, -10, strategy_id="s2"),
            _make_trade(1, 500, strategy_id="s1"),
            _make_trade(2, 20, strategy_id="s2"),
            _make_trade(3, 5, strategy_id=None),
        ]
        perf = compute_strategy_performance(trades, names={"s1": "Breakout H1"})
        assert [p.id for p in perf] == ["s2", "s1"]
        assert perf[0].name == "s2"
        assert perf[1].name == "Breakout H1"
        assert perf[0].trades == 2
        assert perf[0].total_pnl == pytest.approx(10.0)
        assert perf[0].profit_factor == Finite(pytest.approx(2.0))
        assert perf[1].profit_factor is UNBOUNDED

    def test_strategy_name_from_trades(self):
        trades = [
            ClosedTrade(net_pnl=10, symbol="X", strategy_id="s9", strategy_name="Scalping M15"),
        ]
        perf = compute_strategy_performance(trades)
        assert perf[0].name == "Scalping M15"
        assert perf[0].to_dict()["profit_factor_unbounded"] is True
