"""Application wiring for the CATH Guard service.

Builds storage, suppliers, services, the lifecycle scheduler and the API
server from ``Settings`` and owns their start/stop order.
"""

from __future__ import annotations

import logging
from enum import Enum

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from cath_guard.analysis import Deep3HttpClient, Deep3MockService, RiskAnalyzer
from cath_guard.api import ApiServer
from cath_guard.config import Settings
from cath_guard.events import EventBroadcaster
from cath_guard.lifecycle import BotLifecycleManager
from cath_guard.pricing import (
    CachedPriceSupplier,
    JupiterPriceSupplier,
    PriceCache,
    PriceSupplier,
    StaticPriceSupplier,
)
from cath_guard.services import BotService, TierService, TransactionService, WalletService
from cath_guard.storage import (
    MemoryRepository,
    Repository,
    SqlRepository,
    create_engine,
    create_tables,
)

logger = logging.getLogger(__name__)


class ApplicationState(Enum):
    """Application lifecycle states."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


def build_price_supplier(settings: Settings) -> CachedPriceSupplier:
    """Create the configured price supplier behind a TTL cache."""
    supplier: PriceSupplier
    if settings.pricing.source == "jupiter":
        supplier = JupiterPriceSupplier(
            base_url=settings.pricing.jupiter_url,
            cath_mint=settings.pricing.cath_mint,
        )
    else:
        supplier = StaticPriceSupplier()
    return CachedPriceSupplier(
        supplier, PriceCache(ttl_seconds=settings.pricing.cache_ttl_seconds)
    )


def build_analyzer(settings: Settings) -> RiskAnalyzer:
    """Create the Deep3 analyzer, the mock unless an API URL is configured."""
    deep3 = settings.deep3
    if deep3.api_url is None:
        return Deep3MockService(min_latency=deep3.mock_latency_seconds)
    return Deep3HttpClient(
        deep3.api_url,
        api_key=deep3.api_key.get_secret_value() if deep3.api_key else None,
        timeout=deep3.timeout_seconds,
    )


class Application:
    """Container for all CATH Guard components.

    Example:
        ```python
        app = Application(get_settings())
        await app.start()
        ...
        await app.stop()
        ```
    """

    def __init__(self, settings: Settings, *, repository: Repository | None = None) -> None:
        """Build all components.

        Args:
            settings: Application settings.
            repository: Storage override. Defaults to SQL storage when
                ``DATABASE_URL`` is set and in-memory storage otherwise.
        """
        self._settings = settings
        self._state = ApplicationState.STOPPED

        self._engine: AsyncEngine | None = None
        if repository is None:
            if settings.database.url:
                self._engine = create_engine(settings.database.url, echo=settings.database.echo)
                repository = SqlRepository.from_engine(self._engine)
            else:
                repository = MemoryRepository()
        self.repository = repository

        redis = Redis.from_url(settings.redis.url) if settings.redis.url else None
        self.broadcaster = EventBroadcaster(redis=redis, stream_name=settings.redis.stream_name)

        self.prices = build_price_supplier(settings)
        self.analyzer = build_analyzer(settings)

        self.tiers = TierService(
            repository,
            self.prices,
            broadcaster=self.broadcaster,
            pro_threshold=settings.tiers.pro_threshold,
            pro_plus_threshold=settings.tiers.pro_plus_threshold,
            base_fee_waiver_sol=settings.tiers.base_fee_waiver_sol,
        )
        self.wallets = WalletService(repository)
        self.transactions = TransactionService(
            repository, self.tiers, self.analyzer, broadcaster=self.broadcaster
        )
        self.bots = BotService(
            repository,
            self.tiers,
            broadcaster=self.broadcaster,
            included_bots=settings.billing.included_bots,
            max_bots_per_wallet=settings.billing.max_bots_per_wallet,
            monthly_fee=settings.billing.monthly_fee_sol,
            transaction_fee_percent=settings.billing.transaction_fee_percent,
        )
        self.lifecycle = BotLifecycleManager(
            repository,
            interval_seconds=settings.lifecycle.interval_seconds,
            inactive_days=settings.billing.inactive_delete_days,
            broadcaster=self.broadcaster,
        )
        self.api = ApiServer(
            wallets=self.wallets,
            transactions=self.transactions,
            bots=self.bots,
            tiers=self.tiers,
            analyzer=self.analyzer,
            broadcaster=self.broadcaster,
            lifecycle=self.lifecycle,
        )

    @property
    def state(self) -> ApplicationState:
        return self._state

    async def start(self) -> None:
        """Create tables if needed, start the API and the lifecycle scheduler."""
        if self._state != ApplicationState.STOPPED:
            logger.warning(f"Cannot start application in state {self._state.value}")
            return

        self._state = ApplicationState.STARTING
        if self._engine is not None:
            await create_tables(self._engine)
            logger.info("Database tables ready")

        await self.api.start(self._settings.http_host, self._settings.http_port)
        await self.lifecycle.start()

        self._state = ApplicationState.RUNNING
        logger.info("CATH Guard running")

    async def stop(self) -> None:
        """Stop components in reverse start order. Safe to call twice."""
        if self._state in (ApplicationState.STOPPED, ApplicationState.STOPPING):
            return

        self._state = ApplicationState.STOPPING
        await self.lifecycle.stop()
        await self.api.stop()
        await self.broadcaster.close()
        if self._engine is not None:
            await self._engine.dispose()

        self._state = ApplicationState.STOPPED
        logger.info("CATH Guard stopped")
