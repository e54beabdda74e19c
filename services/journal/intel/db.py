# services/journal/intel/db.py
"""SQLite trade store for the journal service.

Rows are returned as plain dicts; converting them into analytics inputs is
the trade_stats adapter's job.
"""

import json
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .models import DashboardFilters, TradeStatus, utc_isoformat
from .trade_risk import (
    CloseTradeInput,
    NewTradeInput,
    RiskMetrics,
    TradeValidationError,
    realized_pnl,
    realized_r_multiple,
)

# Columns the analytics views read, with the strategy display name joined in
_CLOSED_TRADE_COLUMNS = """
    t.id, t.symbol, t.direction, t.net_pnl, t.gross_pnl, t.total_fees,
    t.r_multiple, t.exit_date, t.strategy_id, s.name AS strategy_name
"""


class JournalStoreError(Exception):
    """Raised when the underlying database operation fails."""


def _now() -> str:
    return utc_isoformat(datetime.now(timezone.utc))


class JournalDB:
    """SQLite database manager for portfolios, strategies and trades."""

    def __init__(self, db_path: Optional[str] = None, logger=None):
        if db_path is None:
            base = Path(__file__).resolve().parents[1]
            db_path = str(base / "data" / "journal.db")

        self.db_path = db_path
        self.logger = logger
        self._ensure_dir()
        self._init_schema()

    def _ensure_dir(self):
        """Ensure the database directory exists."""
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """
        One connection per operation. Commits on success; closing without
        commit discards the work on failure. sqlite errors surface as
        JournalStoreError.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise JournalStoreError(f"cannot open journal db: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise JournalStoreError(str(e)) from e
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize the database schema."""
        with self._session() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS portfolios (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    portfolio_type TEXT NOT NULL DEFAULT 'PERSONAL',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS strategies (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    portfolio_id TEXT NOT NULL REFERENCES portfolios(id),
                    strategy_id TEXT REFERENCES strategies(id),

                    symbol TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'OPEN',

                    -- Entry
                    entry_date TEXT NOT NULL,
                    entry_price REAL NOT NULL,
                    quantity REAL NOT NULL,
                    planned_stop_loss REAL,
                    planned_take_profit REAL,
                    risk_amount REAL,

                    -- Exit (nullable until closed)
                    exit_date TEXT,
                    exit_price REAL,

                    -- Realized
                    gross_pnl REAL,
                    net_pnl REAL,
                    total_fees REAL DEFAULT 0,
                    r_multiple REAL,

                    -- Notes
                    setup_notes TEXT,
                    exit_notes TEXT,
                    lessons_learned TEXT,
                    screenshot_url TEXT,
                    chart_timeframe TEXT,
                    tags TEXT,

                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS executions (
                    id TEXT PRIMARY KEY,
                    trade_id TEXT NOT NULL REFERENCES trades(id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    execution_type TEXT NOT NULL,
                    price REAL NOT NULL,
                    quantity REAL NOT NULL,
                    executed_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS psychology_logs (
                    id TEXT PRIMARY KEY,
                    trade_id TEXT NOT NULL REFERENCES trades(id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    tilt_score INTEGER,
                    confidence_level INTEGER,
                    stress_level INTEGER,
                    emotion_tags TEXT,
                    discipline_rating INTEGER,
                    notes TEXT,
                    logged_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_trades_user_status ON trades(user_id, status);
                CREATE INDEX IF NOT EXISTS idx_trades_exit ON trades(exit_date);
                CREATE INDEX IF NOT EXISTS idx_trades_entry ON trades(entry_date);
            """)

    # ==================== Portfolios & Strategies ====================

    def create_portfolio(
        self,
        user_id: str,
        name: str,
        portfolio_type: str = "PERSONAL",
        is_default: bool = False,
    ) -> str:
        """Insert a portfolio and return its id."""
        portfolio_id = str(uuid.uuid4())
        with self._session() as conn:
            conn.execute(
                """INSERT INTO portfolios
                   (id, user_id, name, portfolio_type, is_default, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (portfolio_id, user_id, name, portfolio_type, int(is_default), _now()),
            )
        return portfolio_id

    def create_strategy(self, user_id: str, name: str) -> str:
        """Insert a strategy and return its id."""
        strategy_id = str(uuid.uuid4())
        with self._session() as conn:
            conn.execute(
                "INSERT INTO strategies (id, user_id, name, created_at) VALUES (?, ?, ?, ?)",
                (strategy_id, user_id, name, _now()),
            )
        return strategy_id

    def list_portfolios(self, user_id: str) -> List[Dict[str, Any]]:
        """Active portfolios, default first."""
        with self._session() as conn:
            rows = conn.execute(
                """SELECT id, name, portfolio_type FROM portfolios
                   WHERE user_id = ? AND is_active = 1
                   ORDER BY is_default DESC, created_at ASC""",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def list_strategies(self, user_id: str) -> List[Dict[str, Any]]:
        """Active strategies by name."""
        with self._session() as conn:
            rows = conn.execute(
                """SELECT id, name FROM strategies
                   WHERE user_id = ? AND is_active = 1
                   ORDER BY name ASC""",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def strategy_names(self, user_id: str) -> Dict[str, str]:
        """id -> name for every strategy of the user, inactive ones included."""
        with self._session() as conn:
            rows = conn.execute(
                "SELECT id, name FROM strategies WHERE user_id = ?",
                (user_id,),
            ).fetchall()
        return {r['id']: r['name'] for r in rows}

    # ==================== Trades ====================

    def create_trade(
        self,
        user_id: str,
        trade: NewTradeInput,
        metrics: RiskMetrics,
    ) -> str:
        """
        Insert an OPEN trade with its entry execution and optional psychology log.

        The trade insert must succeed. Execution and psychology inserts are
        best-effort: a failure there is logged and the trade is kept.
        """
        trade_id = str(uuid.uuid4())
        now = _now()

        with self._session() as conn:
            owned = conn.execute(
                "SELECT 1 FROM portfolios WHERE id = ? AND user_id = ?",
                (trade.portfolio_id, user_id),
            ).fetchone()
            if not owned:
                raise TradeValidationError(["portfolio_id: unknown portfolio"])
            conn.execute(
                """INSERT INTO trades (
                       id, user_id, portfolio_id, strategy_id, symbol, direction, mode,
                       status, entry_date, entry_price, quantity, planned_stop_loss,
                       planned_take_profit, risk_amount, r_multiple, setup_notes,
                       screenshot_url, chart_timeframe, tags, created_at, updated_at
                   ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    trade_id, user_id, trade.portfolio_id, trade.strategy_id,
                    trade.symbol, trade.direction.value, trade.mode.value,
                    TradeStatus.OPEN.value, now, trade.entry_price, trade.quantity,
                    trade.stop_loss, trade.take_profit, metrics.total_risk,
                    metrics.r_multiple, trade.setup_notes, trade.screenshot_url,
                    trade.chart_timeframe, json.dumps(trade.tags), now, now,
                ),
            )

        try:
            with self._session() as conn:
                conn.execute(
                    """INSERT INTO executions
                       (id, trade_id, user_id, execution_type, price, quantity, executed_at)
                       VALUES (?, ?, ?, 'ENTRY', ?, ?, ?)""",
                    (str(uuid.uuid4()), trade_id, user_id, trade.entry_price,
                     trade.quantity, now),
                )
        except JournalStoreError as e:
            self._warn(f"entry execution insert failed for {trade_id}: {e}")

        if trade.psychology is not None:
            psych = trade.psychology
            try:
                with self._session() as conn:
                    conn.execute(
                        """INSERT INTO psychology_logs (
                               id, trade_id, user_id, tilt_score, confidence_level,
                               stress_level, emotion_tags, discipline_rating, notes, logged_at
                           ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                        (
                            str(uuid.uuid4()), trade_id, user_id, psych.tilt_score,
                            psych.confidence_level, psych.stress_level,
                            json.dumps(psych.emotion_tags),
                            None if psych.discipline_rating is None else int(psych.discipline_rating),
                            psych.notes, now,
                        ),
                    )
            except JournalStoreError as e:
                self._warn(f"psychology log insert failed for {trade_id}: {e}")

        return trade_id

    def get_trade(self, user_id: str, trade_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM trades WHERE id = ? AND user_id = ?",
                (trade_id, user_id),
            ).fetchone()
        return dict(row) if row else None

    def close_trade(
        self,
        user_id: str,
        trade_id: str,
        close: CloseTradeInput,
    ) -> Optional[Dict[str, Any]]:
        """
        Close an OPEN trade: record exit, realized PnL and realized R.

        Returns the updated row, or None if no open trade matches.
        """
        trade = self.get_trade(user_id, trade_id)
        if not trade or trade['status'] != TradeStatus.OPEN.value:
            return None

        exit_date = close.exit_timestamp() or _now()
        pnl = realized_pnl(
            trade['direction'], trade['entry_price'], close.exit_price,
            trade['quantity'], close.fees,
        )
        r_multiple = realized_r_multiple(pnl['net_pnl'], trade['risk_amount'])

        with self._session() as conn:
            cur = conn.execute(
                """UPDATE trades SET
                       status = ?, exit_date = ?, exit_price = ?, gross_pnl = ?,
                       net_pnl = ?, total_fees = ?, r_multiple = ?, exit_notes = ?,
                       lessons_learned = ?, updated_at = ?
                   WHERE id = ? AND user_id = ? AND status = ?""",
                (
                    TradeStatus.CLOSED.value, exit_date, close.exit_price,
                    pnl['gross_pnl'], pnl['net_pnl'], close.fees,
                    r_multiple if r_multiple is not None else trade['r_multiple'],
                    close.exit_notes, close.lessons_learned, _now(),
                    trade_id, user_id, TradeStatus.OPEN.value,
                ),
            )
            # Closed by someone else since the read above
            if cur.rowcount == 0:
                return None
            conn.execute(
                """INSERT INTO executions
                   (id, trade_id, user_id, execution_type, price, quantity, executed_at)
                   VALUES (?, ?, ?, 'EXIT', ?, ?, ?)""",
                (str(uuid.uuid4()), trade_id, user_id, close.exit_price,
                 trade['quantity'], exit_date),
            )

        return self.get_trade(user_id, trade_id)

    # ==================== Analytics Queries ====================

    @staticmethod
    def _apply_filters(query: str, params: List[Any], filters: Optional[DashboardFilters]):
        if filters is None:
            return query, params
        if filters.portfolio_id:
            query += " AND t.portfolio_id = ?"
            params.append(filters.portfolio_id)
        if filters.strategy_id:
            query += " AND t.strategy_id = ?"
            params.append(filters.strategy_id)
        if filters.mode:
            query += " AND t.mode = ?"
            params.append(filters.mode.value)
        if filters.date_from:
            query += " AND t.exit_date >= ?"
            params.append(filters.date_from)
        if filters.date_to:
            query += " AND t.exit_date <= ?"
            params.append(filters.date_to)
        return query, params

    def list_closed_trades(
        self,
        user_id: str,
        filters: Optional[DashboardFilters] = None,
        require_exit_date: bool = False,
    ) -> List[Dict[str, Any]]:
        """Closed trades for a user, ordered by exit date ascending."""
        query = f"""
            SELECT {_CLOSED_TRADE_COLUMNS}
            FROM trades t LEFT JOIN strategies s ON s.id = t.strategy_id
            WHERE t.user_id = ? AND t.status = 'CLOSED'
        """
        params: List[Any] = [user_id]
        if require_exit_date:
            query += " AND t.exit_date IS NOT NULL"
        query, params = self._apply_filters(query, params, filters)
        query += " ORDER BY t.exit_date ASC, t.created_at ASC, t.id ASC"

        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(r) for r in rows]

    def list_closed_trades_for_equity(
        self,
        user_id: str,
        filters: Optional[DashboardFilters] = None,
    ) -> List[Dict[str, Any]]:
        """Closed trades with an exit date, ascending. Equity curve input contract."""
        return self.list_closed_trades(user_id, filters, require_exit_date=True)

    def list_recent_trades(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest trades of any status by entry date, with strategy name."""
        with self._session() as conn:
            rows = conn.execute(
                """SELECT t.id, t.symbol, t.direction, t.status, t.entry_date, t.exit_date,
                          t.entry_price, t.exit_price, t.quantity, t.net_pnl, t.r_multiple,
                          s.name AS strategy_name
                   FROM trades t LEFT JOIN strategies s ON s.id = t.strategy_id
                   WHERE t.user_id = ?
                   ORDER BY t.entry_date DESC
                   LIMIT ?""",
                (user_id, limit),
            ).fetchall()
        return [dict(r) for r in rows]

    def portfolio_stats(self, user_id: str) -> List[Dict[str, Any]]:
        """Closed-trade totals per active portfolio."""
        with self._session() as conn:
            rows = conn.execute(
                """SELECT p.id AS portfolio_id, p.name AS portfolio_name,
                          p.portfolio_type,
                          COUNT(t.id) AS total_trades,
                          COALESCE(SUM(CASE WHEN t.net_pnl > 0 THEN 1 ELSE 0 END), 0) AS winning_trades,
                          COALESCE(SUM(t.net_pnl), 0) AS total_pnl
                   FROM portfolios p
                   LEFT JOIN trades t
                     ON t.portfolio_id = p.id AND t.status = 'CLOSED'
                   WHERE p.user_id = ? AND p.is_active = 1
                   GROUP BY p.id
                   ORDER BY p.is_default DESC, p.created_at ASC""",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def _warn(self, message: str):
        if self.logger:
            self.logger.warn(message)
