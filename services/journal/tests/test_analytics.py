"""
Analytics facade tests: real SQLite store plus a store that always fails.
"""

import pytest

from ..intel.analytics import Analytics, PORTFOLIO_BASE_BALANCE
from ..intel.db import JournalDB, JournalStoreError
from ..intel.trade_risk import compute_risk_metrics, validate_close_trade, validate_new_trade
from ..intel import sample_data
from ..intel.trade_stats import StreakType, TradingStats, Unbounded

USER = "fotw:42"


class BrokenDB:
    """Store double whose every query fails."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise JournalStoreError("database is locked")
        return fail


class RecordingLogger:
    def __init__(self):
        self.errors = []

    def error(self, message, emoji=""):
        self.errors.append(message)


@pytest.fixture
def db(tmp_path):
    return JournalDB(str(tmp_path / "journal.db"))


@pytest.fixture
def analytics(db):
    return Analytics(db)


def _round_trip(db, portfolio_id, symbol, exit_price, exit_date, strategy_id=None, stop_loss=95.0):
    trade = validate_new_trade({
        "symbol": symbol,
        "direction": "LONG",
        "mode": "LIVE",
        "portfolio_id": portfolio_id,
        "strategy_id": strategy_id,
        "entry_price": 100.0,
        "quantity": 10,
        "stop_loss": stop_loss,
    })
    trade_id = db.create_trade(USER, trade, compute_risk_metrics(trade))
    db.close_trade(USER, trade_id, validate_close_trade({"exit_price": exit_price, "exit_date": exit_date}))
    return trade_id


class TestNoUser:

    def test_every_view_serves_samples(self, analytics):
        assert analytics.get_trading_stats(None).data == sample_data.sample_trading_stats()
        assert analytics.get_equity_curve(None).data == sample_data.sample_equity_curve()
        assert analytics.get_strategy_performance(None).data == sample_data.sample_strategy_performance()
        assert analytics.get_symbol_performance(None).data == sample_data.sample_symbol_performance()
        assert analytics.get_recent_trades(None).data == sample_data.sample_recent_trades()
        assert analytics.get_portfolio_summaries(None).data == sample_data.sample_portfolio_summaries()

    def test_sample_results_are_successful(self, analytics):
        assert analytics.get_trading_stats(None).success
        assert analytics.get_recent_trades("").success


class TestStoreFailure:

    def test_stats_fails(self):
        logger = RecordingLogger()
        result = Analytics(BrokenDB(), logger).get_trading_stats(USER)
        assert not result.success
        assert result.error
        assert logger.errors

    def test_other_views_fall_back_to_samples(self):
        analytics = Analytics(BrokenDB(), RecordingLogger())
        assert analytics.get_equity_curve(USER).data == sample_data.sample_equity_curve()
        assert analytics.get_strategy_performance(USER).data == sample_data.sample_strategy_performance()
        assert analytics.get_symbol_performance(USER).data == sample_data.sample_symbol_performance()
        assert analytics.get_recent_trades(USER).data == sample_data.sample_recent_trades()
        assert analytics.get_portfolio_summaries(USER).data == sample_data.sample_portfolio_summaries()


class TestWithTrades:

    def test_empty_store_gives_empty_views(self, analytics):
        assert analytics.get_trading_stats(USER).data == TradingStats.empty()
        assert analytics.get_equity_curve(USER).data == []
        assert analytics.get_symbol_performance(USER).data == []
        assert analytics.get_strategy_performance(USER).data == []
        assert analytics.get_recent_trades(USER).data == []

    def test_stats_over_closed_trades(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        _round_trip(db, p, "EURUSD", 110.0, "2024-12-01T10:00:00+00:00")
        _round_trip(db, p, "EURUSD", 95.0, "2024-12-02T10:00:00+00:00")
        _round_trip(db, p, "BTCUSD", 120.0, "2024-12-03T10:00:00+00:00")

        stats = analytics.get_trading_stats(USER).data
        assert stats.closed_trades == 3
        assert stats.winning_trades == 2
        assert stats.net_pnl == pytest.approx(250.0)
        assert stats.profit_factor.value == pytest.approx(300.0 / 50.0)
        assert stats.streak_type == StreakType.WINNING
        assert stats.current_streak == 1

    def test_equity_curve_follows_exit_order(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        _round_trip(db, p, "EURUSD", 110.0, "2024-12-02T10:00:00+00:00")
        _round_trip(db, p, "EURUSD", 95.0, "2024-12-01T10:00:00+00:00")

        curve = analytics.get_equity_curve(USER).data
        assert [pt.date for pt in curve] == ["2024-12-01", "2024-12-02"]
        assert [pt.cumulative_pnl for pt in curve] == pytest.approx([-50.0, 50.0])
        assert [pt.trade_count for pt in curve] == [1, 2]

    def test_symbols_sorted_by_pnl(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        _round_trip(db, p, "EURUSD", 101.0, "2024-12-01T10:00:00+00:00")
        _round_trip(db, p, "BTCUSD", 120.0, "2024-12-02T10:00:00+00:00")

        symbols = analytics.get_symbol_performance(USER).data
        assert [s.symbol for s in symbols] == ["BTCUSD", "EURUSD"]

    def test_strategy_names_and_unbounded_profit_factor(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        s = db.create_strategy(USER, "Breakout H1")
        _round_trip(db, p, "EURUSD", 110.0, "2024-12-01T10:00:00+00:00", strategy_id=s)
        _round_trip(db, p, "EURUSD", 105.0, "2024-12-02T10:00:00+00:00")

        strategies = analytics.get_strategy_performance(USER).data
        assert len(strategies) == 1
        assert strategies[0].name == "Breakout H1"
        assert isinstance(strategies[0].profit_factor, Unbounded)

    def test_portfolio_summary_balances(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        _round_trip(db, p, "EURUSD", 110.0, "2024-12-01T10:00:00+00:00")
        _round_trip(db, p, "EURUSD", 95.0, "2024-12-02T10:00:00+00:00")

        summary = analytics.get_portfolio_summaries(USER).data[0]
        assert summary.initial_balance == PORTFOLIO_BASE_BALANCE
        assert summary.total_pnl == pytest.approx(50.0)
        assert summary.current_balance == pytest.approx(10050.0)
        assert summary.return_percent == pytest.approx(0.5)
        assert summary.trades == 2
        assert summary.win_rate == pytest.approx(50.0)

    def test_recent_trades_mapped(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        _round_trip(db, p, "EURUSD", 110.0, "2024-12-01T10:00:00+00:00")

        trade = analytics.get_recent_trades(USER).data[0]
        assert trade.symbol == "EURUSD"
        assert trade.status == "CLOSED"
        assert trade.net_pnl == pytest.approx(100.0)
        assert trade.exit_price == pytest.approx(110.0)

    def test_equity_curve_orders_mixed_offsets_by_instant(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        # 10:00 at -05:00 is 15:00 UTC, so the -5 trade at 14:30 UTC comes first
        _round_trip(db, p, "EURUSD", 101.0, "2024-05-01T10:00:00-05:00")
        _round_trip(db, p, "EURUSD", 99.5, "2024-05-01T14:30:00+00:00")

        curve = analytics.get_equity_curve(USER).data
        assert [pt.pnl for pt in curve] == pytest.approx([-5.0, 10.0])
        assert [pt.cumulative_pnl for pt in curve] == pytest.approx([-5.0, 5.0])

    def test_recent_trades_non_finite_pnl_reads_as_zero(self, db, analytics):
        p = db.create_portfolio(USER, "Live")
        trade_id = _round_trip(db, p, "EURUSD", 110.0, "2024-12-01T10:00:00+00:00")
        with db._session() as conn:
            conn.execute(
                "UPDATE trades SET net_pnl = ?, r_multiple = ? WHERE id = ?",
                (float("inf"), float("nan"), trade_id),
            )

        trade = analytics.get_recent_trades(USER).data[0]
        assert trade.net_pnl == 0.0
        assert trade.r_multiple == 0.0
