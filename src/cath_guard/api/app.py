"""HTTP and WebSocket API.

Routes are thin: they validate the body, call a service and serialize the
result. Domain errors are mapped to status codes by ``error_middleware``.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

import httpx
from aiohttp import WSMsgType, web
from prometheus_client import generate_latest
from pydantic import BaseModel, ValidationError

from cath_guard.analysis.models import RiskAnalyzer
from cath_guard.api.schemas import (
    ConnectWalletRequest,
    CreateBotRequest,
    CreatePassRequest,
    ImportBotRequest,
    SimulateTransactionRequest,
    UpdateBotRequest,
    UpdatePassRequest,
    UpdateWalletRequest,
)
from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.exceptions import BotLimitError, SupplierError, TierRequiredError
from cath_guard.lifecycle.scheduler import BotLifecycleManager, LifecycleState
from cath_guard.metrics import WEBSOCKET_CLIENTS
from cath_guard.services import BotService, TierService, TransactionService, WalletService

logger = logging.getLogger(__name__)

DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 8080
WEBSOCKET_HEARTBEAT_SECONDS = 30.0

ModelT = TypeVar("ModelT", bound=BaseModel)
Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(message: str, status: int, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


def _not_found(what: str) -> web.Response:
    return _error(f"{what} not found", 404)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate domain and validation errors into JSON error responses."""
    try:
        return await handler(request)
    except ValidationError as e:
        return _error(
            "Invalid request body",
            400,
            details=e.errors(include_url=False, include_context=False, include_input=False),
        )
    except TierRequiredError as e:
        return _error(str(e), 403, required_tier=e.required, current_tier=e.actual)
    except (BotLimitError, ValueError) as e:
        return _error(str(e), 400)


async def _parse(request: web.Request, model: type[ModelT]) -> ModelT:
    try:
        payload = await request.json()
    except ValueError as e:
        raise ValueError("Request body must be valid JSON") from e
    return model.model_validate(payload)


class ApiServer:
    """aiohttp application serving the REST API, WebSocket feed and metrics.

    Every connected WebSocket client receives each event published on the
    broadcaster as a JSON message.
    """

    def __init__(
        self,
        *,
        wallets: WalletService,
        transactions: TransactionService,
        bots: BotService,
        tiers: TierService,
        analyzer: RiskAnalyzer,
        broadcaster: EventBroadcaster,
        lifecycle: BotLifecycleManager | None = None,
    ) -> None:
        self._wallets = wallets
        self._transactions = transactions
        self._bots = bots
        self._tiers = tiers
        self._analyzer = analyzer
        self._broadcaster = broadcaster
        self._lifecycle = lifecycle

        self._clients: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._start_time = time.time()

        broadcaster.subscribe(self._broadcast)

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def create_app(self) -> web.Application:
        """Create the aiohttp application with all routes registered."""
        app = web.Application(middlewares=[error_middleware])
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        app.router.add_get("/ws", self._handle_websocket)

        app.router.add_post("/api/wallets", self._connect_wallet)
        app.router.add_get("/api/wallets/{address}", self._get_wallet)
        app.router.add_patch("/api/wallets/{wallet_id}", self._update_wallet)
        app.router.add_post("/api/wallets/{wallet_id}/resolve-tier", self._resolve_tier)
        app.router.add_get("/api/wallets/{wallet_id}/payment-summary", self._payment_summary)
        app.router.add_get("/api/wallets/{wallet_id}/transaction-fee", self._transaction_fee)

        app.router.add_post("/api/transactions/simulate", self._simulate_transaction)
        app.router.add_get("/api/transactions/{wallet_address}", self._list_transactions)

        app.router.add_post("/api/arbitrage-bots", self._create_bot)
        app.router.add_post("/api/arbitrage-bots/import", self._import_bot)
        app.router.add_get("/api/arbitrage-bots/{wallet_address}", self._list_bots)
        app.router.add_patch("/api/arbitrage-bots/{bot_id}", self._update_bot)
        app.router.add_delete("/api/arbitrage-bots/{bot_id}", self._delete_bot)

        app.router.add_post("/api/nft-passes", self._create_pass)
        app.router.add_get("/api/nft-passes/{wallet_id}", self._list_passes)
        app.router.add_patch("/api/nft-passes/{pass_id}", self._update_pass)

        app.router.add_get("/api/prices", self._quote_prices)
        app.router.add_get("/api/deep3/analyze/{token_address}", self._analyze_token)
        app.router.add_post("/api/lifecycle/run", self._run_lifecycle)

        app.on_shutdown.append(self._close_clients)
        return app

    async def start(self, host: str = DEFAULT_HTTP_HOST, port: int = DEFAULT_HTTP_PORT) -> None:
        """Start serving on ``host:port``."""
        if self._runner:
            logger.warning("API server already running")
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, host, port)
        await site.start()

        logger.info("API server listening on %s:%d", host, port)

    async def stop(self) -> None:
        """Stop the server and disconnect WebSocket clients."""
        self._broadcaster.unsubscribe(self._broadcast)
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")

    # ------------------------------------------------------------------
    # Health, metrics and WebSocket feed
    # ------------------------------------------------------------------

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint."""
        lifecycle_state = self._lifecycle.state if self._lifecycle else None
        healthy = lifecycle_state != LifecycleState.ERROR

        body: dict[str, Any] = {
            "status": "healthy" if healthy else "degraded",
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "websocket_clients": len(self._clients),
            "lifecycle": lifecycle_state.value if lifecycle_state else None,
        }
        return web.json_response(body, status=200 if healthy else 503)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle /metrics endpoint (Prometheus format)."""
        return web.Response(
            body=generate_latest(),
            content_type="text/plain",
            charset="utf-8",
        )

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=WEBSOCKET_HEARTBEAT_SECONDS)
        await ws.prepare(request)

        self._clients.add(ws)
        WEBSOCKET_CLIENTS.set(len(self._clients))
        logger.info(f"WebSocket client connected ({len(self._clients)} total)")

        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.warning(f"WebSocket connection error: {ws.exception()}")
        finally:
            self._clients.discard(ws)
            WEBSOCKET_CLIENTS.set(len(self._clients))
            logger.info(f"WebSocket client disconnected ({len(self._clients)} total)")

        return ws

    async def _broadcast(self, payload: dict[str, Any]) -> None:
        for ws in list(self._clients):
            if ws.closed:
                self._clients.discard(ws)
                continue
            try:
                await ws.send_json(payload)
            except (ConnectionError, RuntimeError) as e:
                logger.warning(f"Dropping WebSocket client after send failure: {e}")
                self._clients.discard(ws)
        WEBSOCKET_CLIENTS.set(len(self._clients))

    async def _close_clients(self, _app: web.Application) -> None:
        for ws in list(self._clients):
            with contextlib.suppress(ConnectionError, RuntimeError):
                await ws.close(code=1001, message=b"Server shutdown")
        self._clients.clear()
        WEBSOCKET_CLIENTS.set(0)

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def _connect_wallet(self, request: web.Request) -> web.Response:
        body = await _parse(request, ConnectWalletRequest)
        wallet, created = await self._wallets.connect(body.to_wallet())
        return web.json_response(wallet.to_dict(), status=201 if created else 200)

    async def _get_wallet(self, request: web.Request) -> web.Response:
        wallet = await self._wallets.get_by_address(request.match_info["address"])
        if wallet is None:
            return _not_found("Wallet")
        return web.json_response(wallet.to_dict())

    async def _update_wallet(self, request: web.Request) -> web.Response:
        body = await _parse(request, UpdateWalletRequest)
        wallet = await self._wallets.update(request.match_info["wallet_id"], body.to_patch())
        if wallet is None:
            return _not_found("Wallet")
        return web.json_response(wallet.to_dict())

    async def _resolve_tier(self, request: web.Request) -> web.Response:
        refresh = await self._tiers.refresh(request.match_info["wallet_id"])
        if refresh is None:
            return _not_found("Wallet")
        return web.json_response(
            {
                "wallet": refresh.wallet.to_dict(),
                "resolved": refresh.resolved.to_dict(),
                "base_fee_waived": refresh.base_fee_waived,
                "tier_changed": refresh.tier_changed,
            }
        )

    async def _payment_summary(self, request: web.Request) -> web.Response:
        summary = await self._bots.payment_summary(request.match_info["wallet_id"])
        if summary is None:
            return _not_found("Wallet")
        return web.json_response(summary.to_dict())

    async def _transaction_fee(self, request: web.Request) -> web.Response:
        try:
            amount = Decimal(request.query.get("amount", ""))
        except InvalidOperation:
            return _error("Query parameter amount must be a number", 400)
        if not amount.is_finite() or amount < 0:
            return _error("Query parameter amount must be a non-negative number", 400)

        fee = await self._bots.transaction_fee(request.match_info["wallet_id"], amount)
        if fee is None:
            return _not_found("Wallet")
        return web.json_response({"amount": str(amount), "fee": str(fee)})

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _list_transactions(self, request: web.Request) -> web.Response:
        transactions = await self._transactions.list_for_wallet(
            request.match_info["wallet_address"]
        )
        if transactions is None:
            return _not_found("Wallet")
        return web.json_response([t.to_dict() for t in transactions])

    async def _simulate_transaction(self, request: web.Request) -> web.Response:
        body = await _parse(request, SimulateTransactionRequest)
        transaction = await self._transactions.process(body.to_transfer())
        if transaction is None:
            return _not_found("Wallet")
        return web.json_response(transaction.to_dict(), status=201)

    # ------------------------------------------------------------------
    # Arbitrage bots
    # ------------------------------------------------------------------

    async def _list_bots(self, request: web.Request) -> web.Response:
        bots = await self._bots.list_for_wallet(request.match_info["wallet_address"])
        if bots is None:
            return _not_found("Wallet")
        return web.json_response([b.to_dict() for b in bots])

    async def _create_bot(self, request: web.Request) -> web.Response:
        body = await _parse(request, CreateBotRequest)
        bot = await self._bots.create(body.wallet_id, body.to_config())
        if bot is None:
            return _not_found("Wallet")
        return web.json_response(bot.to_dict(), status=201)

    async def _import_bot(self, request: web.Request) -> web.Response:
        body = await _parse(request, ImportBotRequest)
        bot = await self._bots.create(body.wallet_id, body.template.to_config())
        if bot is None:
            return _not_found("Wallet")
        return web.json_response(bot.to_dict(), status=201)

    async def _update_bot(self, request: web.Request) -> web.Response:
        body = await _parse(request, UpdateBotRequest)
        bot = await self._bots.update(request.match_info["bot_id"], body.to_patch())
        if bot is None:
            return _not_found("Bot")
        return web.json_response(bot.to_dict())

    async def _delete_bot(self, request: web.Request) -> web.Response:
        if not await self._bots.delete(request.match_info["bot_id"]):
            return _not_found("Bot")
        return web.Response(status=204)

    # ------------------------------------------------------------------
    # NFT passes
    # ------------------------------------------------------------------

    async def _list_passes(self, request: web.Request) -> web.Response:
        passes = await self._wallets.list_passes(request.match_info["wallet_id"])
        if passes is None:
            return _not_found("Wallet")
        return web.json_response([p.to_dict() for p in passes])

    async def _create_pass(self, request: web.Request) -> web.Response:
        body = await _parse(request, CreatePassRequest)
        nft_pass = await self._wallets.add_pass(body.to_pass())
        if nft_pass is None:
            return _not_found("Wallet")
        return web.json_response(nft_pass.to_dict(), status=201)

    async def _update_pass(self, request: web.Request) -> web.Response:
        body = await _parse(request, UpdatePassRequest)
        nft_pass = await self._wallets.update_pass(request.match_info["pass_id"], body.to_patch())
        if nft_pass is None:
            return _not_found("Pass")
        return web.json_response(nft_pass.to_dict())

    # ------------------------------------------------------------------
    # Deep3 and lifecycle
    # ------------------------------------------------------------------

    async def _analyze_token(self, request: web.Request) -> web.Response:
        token_address = request.match_info["token_address"]
        try:
            analysis = await self._analyzer.analyze_token(token_address)
        except (SupplierError, httpx.HTTPError) as e:
            logger.warning(f"Deep3 analysis failed for {token_address}: {e}")
            return _error("Risk analysis unavailable", 502)
        return web.json_response(analysis.to_dict())

    async def _quote_prices(self, _request: web.Request) -> web.Response:
        try:
            quotes = await self._tiers.quote_prices()
        except (SupplierError, httpx.HTTPError) as e:
            logger.warning(f"Price quote failed: {e}")
            return _error("Prices unavailable", 502)
        return web.json_response(quotes)

    async def _run_lifecycle(self, _request: web.Request) -> web.Response:
        if self._lifecycle is None:
            return _error("Lifecycle manager not configured", 503)
        if self._lifecycle.is_sweeping:
            return _error("Lifecycle sweep already running", 409)
        result = await self._lifecycle.run_now()
        if result is None:
            return _error("Lifecycle sweep failed", 503, state=self._lifecycle.state.value)
        return web.json_response(result.to_dict())
