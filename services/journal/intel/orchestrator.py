# services/journal/intel/orchestrator.py
"""API server and main loop for the trade journal service."""

import asyncio
import json
from typing import Dict, Any, List
from datetime import datetime, timezone

from aiohttp import web

from .db import JournalDB, JournalStoreError
from .models import ActionResult, DashboardFilters
from .analytics import Analytics
from .auth import JournalAuth, require_auth, optional_auth
from .trade_risk import (
    TradeValidationError,
    compute_risk_metrics,
    validate_close_trade,
    validate_new_trade,
)

DEFAULT_ALLOWED_ORIGINS = [
    'http://localhost:3000',
    'http://localhost:5173',
    'http://127.0.0.1:3000',
    'http://127.0.0.1:5173',
]

MAX_RECENT_LIMIT = 100


def _render(data: Any) -> Any:
    """Dataclass results (or lists of them) to JSON-safe dicts."""
    if isinstance(data, list):
        return [_render(item) for item in data]
    if hasattr(data, 'to_dict'):
        return data.to_dict()
    return data


def _allowed_origins(config: Dict[str, Any]) -> List[str]:
    raw = config.get('JOURNAL_ALLOWED_ORIGINS') or ''
    origins = [o.strip() for o in str(raw).split(',') if o.strip()]
    return origins or list(DEFAULT_ALLOWED_ORIGINS)


class JournalOrchestrator:
    """REST API server for the trade journal dashboard."""

    def __init__(self, config: Dict[str, Any], logger, db: JournalDB = None):
        self.config = config
        self.logger = logger
        self.port = int(config.get('JOURNAL_PORT', 3002))
        self.db = db or JournalDB(config.get('JOURNAL_DB_PATH') or None, logger=logger)
        self.analytics = Analytics(self.db, logger)
        self.auth = JournalAuth(config)
        self.allowed_origins = _allowed_origins(config)

    def _get_cors_origin(self, request: web.Request) -> str:
        """Get allowed origin for CORS response."""
        origin = request.headers.get('Origin', '')
        if origin in self.allowed_origins:
            return origin
        return self.allowed_origins[0]

    def _json_response(self, data: Any, status: int = 200) -> web.Response:
        """Create a JSON response. CORS headers are added by the middleware."""
        return web.Response(
            text=json.dumps(data, default=str),
            status=status,
            content_type='application/json',
        )

    def _error_response(self, message: str, status: int = 400) -> web.Response:
        """Create an error JSON response."""
        return self._json_response({'success': False, 'error': message}, status)

    def _result_response(self, result: ActionResult) -> web.Response:
        return self._json_response(
            result.to_dict(_render),
            200 if result.success else 500,
        )

    async def handle_options(self, request: web.Request) -> web.Response:
        """Handle CORS preflight requests."""
        return web.Response(status=204)

    @staticmethod
    def _user_id(request: web.Request):
        user = request.get('user')
        return user['id'] if user else None

    # ==================== Dashboard Endpoints ====================

    @optional_auth
    async def get_stats(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/stats - Aggregate trading statistics."""
        try:
            filters = DashboardFilters.from_query(request.query)
            result = self.analytics.get_trading_stats(self._user_id(request), filters)
            if not result.success:
                self.logger.warn(f"get_stats failed: {result.error}")
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_stats error: {e}")
            return self._error_response(str(e), 500)

    @optional_auth
    async def get_equity(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/equity - Cumulative PnL curve."""
        try:
            filters = DashboardFilters.from_query(request.query)
            result = self.analytics.get_equity_curve(self._user_id(request), filters)
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_equity error: {e}")
            return self._error_response(str(e), 500)

    @optional_auth
    async def get_strategy_performance(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/strategies - Per-strategy performance."""
        try:
            filters = DashboardFilters.from_query(request.query)
            result = self.analytics.get_strategy_performance(self._user_id(request), filters)
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_strategy_performance error: {e}")
            return self._error_response(str(e), 500)

    @optional_auth
    async def get_symbol_performance(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/symbols - Per-symbol performance."""
        try:
            filters = DashboardFilters.from_query(request.query)
            result = self.analytics.get_symbol_performance(self._user_id(request), filters)
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_symbol_performance error: {e}")
            return self._error_response(str(e), 500)

    @optional_auth
    async def get_recent(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/recent?limit=N - Latest trades of any status."""
        try:
            try:
                limit = int(request.query.get('limit', 10))
            except ValueError:
                return self._error_response('limit must be an integer', 400)
            limit = max(1, min(limit, MAX_RECENT_LIMIT))

            result = self.analytics.get_recent_trades(self._user_id(request), limit)
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_recent error: {e}")
            return self._error_response(str(e), 500)

    @optional_auth
    async def get_portfolio_summaries(self, request: web.Request) -> web.Response:
        """GET /api/dashboard/portfolios - Balance rollup per portfolio."""
        try:
            result = self.analytics.get_portfolio_summaries(self._user_id(request))
            return self._result_response(result)
        except Exception as e:
            self.logger.error(f"get_portfolio_summaries error: {e}")
            return self._error_response(str(e), 500)

    # ==================== Portfolio & Strategy Endpoints ====================

    @require_auth
    async def list_portfolios(self, request: web.Request) -> web.Response:
        """GET /api/portfolios - Active portfolios for the user."""
        try:
            portfolios = self.db.list_portfolios(request['user']['id'])
            return self._json_response({'success': True, 'data': portfolios})
        except JournalStoreError as e:
            self.logger.error(f"list_portfolios error: {e}")
            return self._error_response('Failed to load portfolios', 500)

    @require_auth
    async def create_portfolio(self, request: web.Request) -> web.Response:
        """POST /api/portfolios - Create a portfolio."""
        try:
            body = await request.json()
            name = str(body.get('name') or '').strip()
            if not name:
                return self._error_response('name is required', 400)

            portfolio_id = self.db.create_portfolio(
                request['user']['id'],
                name,
                portfolio_type=str(body.get('type') or 'PERSONAL').upper(),
                is_default=bool(body.get('is_default', False)),
            )
            self.logger.info(f"created portfolio {portfolio_id}", emoji="💼")
            return self._json_response({'success': True, 'data': {'id': portfolio_id}}, 201)
        except json.JSONDecodeError:
            return self._error_response('Invalid JSON body', 400)
        except JournalStoreError as e:
            self.logger.error(f"create_portfolio error: {e}")
            return self._error_response('Failed to create portfolio', 500)

    @require_auth
    async def list_strategies(self, request: web.Request) -> web.Response:
        """GET /api/strategies - Active strategies for the user."""
        try:
            strategies = self.db.list_strategies(request['user']['id'])
            return self._json_response({'success': True, 'data': strategies})
        except JournalStoreError as e:
            self.logger.error(f"list_strategies error: {e}")
            return self._error_response('Failed to load strategies', 500)

    @require_auth
    async def create_strategy(self, request: web.Request) -> web.Response:
        """POST /api/strategies - Create a strategy."""
        try:
            body = await request.json()
            name = str(body.get('name') or '').strip()
            if not name:
                return self._error_response('name is required', 400)

            strategy_id = self.db.create_strategy(request['user']['id'], name)
            return self._json_response({'success': True, 'data': {'id': strategy_id}}, 201)
        except json.JSONDecodeError:
            return self._error_response('Invalid JSON body', 400)
        except JournalStoreError as e:
            self.logger.error(f"create_strategy error: {e}")
            return self._error_response('Failed to create strategy', 500)

    # ==================== Trade Endpoints ====================

    @require_auth
    async def create_trade(self, request: web.Request) -> web.Response:
        """POST /api/trades - Open a trade with planned risk metrics."""
        try:
            body = await request.json()
            trade = validate_new_trade(body)
            metrics = compute_risk_metrics(trade)

            trade_id = self.db.create_trade(request['user']['id'], trade, metrics)
            self.logger.info(f"created trade {trade_id} ({trade.symbol})", emoji="📝")

            return self._json_response({
                'success': True,
                'data': {
                    'id': trade_id,
                    'risk_amount': metrics.total_risk,
                    'r_multiple': metrics.r_multiple,
                },
            }, 201)
        except json.JSONDecodeError:
            return self._error_response('Invalid JSON body', 400)
        except TradeValidationError as e:
            return self._error_response(str(e), 400)
        except JournalStoreError as e:
            self.logger.error(f"create_trade error: {e}")
            return self._error_response('Failed to create trade', 500)

    @require_auth
    async def close_trade(self, request: web.Request) -> web.Response:
        """POST /api/trades/:id/close - Close an open trade."""
        try:
            trade_id = request.match_info['id']
            body = await request.json()
            close = validate_close_trade(body)

            trade = self.db.close_trade(request['user']['id'], trade_id, close)
            if not trade:
                return self._error_response('Open trade not found', 404)

            self.logger.info(f"closed trade {trade_id}: net {trade['net_pnl']:.2f}", emoji="✅")
            return self._json_response({'success': True, 'data': trade})
        except json.JSONDecodeError:
            return self._error_response('Invalid JSON body', 400)
        except TradeValidationError as e:
            return self._error_response(str(e), 400)
        except JournalStoreError as e:
            self.logger.error(f"close_trade error: {e}")
            return self._error_response('Failed to close trade', 500)

    # ==================== Health & App Setup ====================

    async def health_check(self, request: web.Request) -> web.Response:
        """GET /health - Health check endpoint."""
        return self._json_response({
            'success': True,
            'service': 'journal',
            'status': 'healthy',
            'ts': datetime.now(timezone.utc).isoformat()
        })

    @web.middleware
    async def cors_middleware(self, request: web.Request, handler):
        """Add CORS headers to all responses."""
        if request.method == 'OPTIONS':
            response = await self.handle_options(request)
        else:
            response = await handler(request)

        response.headers['Access-Control-Allow-Origin'] = self._get_cors_origin(request)
        response.headers['Access-Control-Allow-Credentials'] = 'true'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'

        return response

    def create_app(self) -> web.Application:
        """Create the aiohttp application with routes."""
        app = web.Application(middlewares=[self.cors_middleware])

        app.router.add_route('OPTIONS', '/{tail:.*}', self.handle_options)

        app.router.add_get('/health', self.health_check)

        # Dashboard
        app.router.add_get('/api/dashboard/stats', self.get_stats)
        app.router.add_get('/api/dashboard/equity', self.get_equity)
        app.router.add_get('/api/dashboard/strategies', self.get_strategy_performance)
        app.router.add_get('/api/dashboard/symbols', self.get_symbol_performance)
        app.router.add_get('/api/dashboard/recent', self.get_recent)
        app.router.add_get('/api/dashboard/portfolios', self.get_portfolio_summaries)

        # Portfolios & strategies
        app.router.add_get('/api/portfolios', self.list_portfolios)
        app.router.add_post('/api/portfolios', self.create_portfolio)
        app.router.add_get('/api/strategies', self.list_strategies)
        app.router.add_post('/api/strategies', self.create_strategy)

        # Trades
        app.router.add_post('/api/trades', self.create_trade)
        app.router.add_post('/api/trades/{id}/close', self.close_trade)

        return app

    async def start(self) -> web.AppRunner:
        """Start the API server and return the runner for cleanup."""
        app = self.create_app()
        runner = web.AppRunner(app)
        await runner.setup()

        site = web.TCPSite(runner, '0.0.0.0', self.port)
        await site.start()

        self.logger.ok(f"Trade Journal API running on port {self.port}", emoji="📒")
        return runner


async def run(config: Dict[str, Any], logger) -> None:
    """Entry point for orchestrator."""
    orchestrator = JournalOrchestrator(config, logger)
    runner = await orchestrator.start()

    try:
        while True:
            await asyncio.sleep(1)
    except asyncio.CancelledError:
        logger.info("Orchestrator cancelled", emoji="🛑")
    finally:
        logger.info("Shutting down API server", emoji="🛑")
        await runner.cleanup()
