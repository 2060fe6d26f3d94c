"""Ingestion loop: quotes in, recommendations and holdings out.

Four independent periodic tasks share one price window:
- quotes: fetch best bid/ask for every symbol and append to the window (fast)
- recommendations: run the decision engine and publish the mapping (slow)
- holdings: value account holdings at the latest prices and publish them
- flush: write the full price history to durable storage

The quote task is the only writer of the window. Every network call is
bounded by its own timeout, and a failed fetch skips the cycle without
touching the window.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from core.decision_engine import DecisionEngine
from core.models import HoldingsSnapshot, PricePoint, Quote, Recommendation
from core.price_window import SlidingPriceWindow
from core.strategy.protocol import (
    HoldingsCallback,
    MarketDataSource,
    OrderGateway,
    RecommendationsCallback,
)
from app.services.holdings import build_holdings_snapshot
from app.services.scheduler import PeriodicTask

logger = logging.getLogger(__name__)


# A cycle is one upstream call plus subscriber pushes, each bounded by
# request_timeout
CYCLE_TIMEOUT_FACTOR = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionService:
    """Periodic quote ingestion and recommendation publishing."""

    def __init__(
        self,
        market_data: MarketDataSource,
        window: SlidingPriceWindow,
        engine: DecisionEngine,
        symbols: list[str],
        quote_interval: float = 1.0,
        recommendation_interval: float = 10.0,
        flush_interval: float = 300.0,
        request_timeout: float = 5.0,
        holdings_source: OrderGateway | None = None,
        holdings_interval: float = 5.0,
        cycle_timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            market_data: Source of best bid/ask quotes
            window: Price window this service writes to
            engine: Decision engine for the recommendation cycle
            symbols: Symbols to ingest and classify
            quote_interval: Seconds between quote fetches
            recommendation_interval: Seconds between decision cycles
            flush_interval: Seconds between history flushes
            request_timeout: Timeout for each upstream call
            holdings_source: Optional gateway for account holdings
            holdings_interval: Seconds between holdings refreshes
            cycle_timeout: Upper bound for one quote, recommendation or
                holdings cycle (default: 3 x request_timeout)
            clock: Source of the current UTC time
        """
        self.market_data = market_data
        self.window = window
        self.engine = engine
        self.symbols = list(symbols)
        self.request_timeout = request_timeout
        self.cycle_timeout = cycle_timeout or CYCLE_TIMEOUT_FACTOR * request_timeout
        self.holdings_source = holdings_source
        self._clock = clock

        self._recommendations: dict[str, Recommendation] = {}
        self._holdings: list[HoldingsSnapshot] = []
        self._recommendation_callbacks: list[RecommendationsCallback] = []
        self._holdings_callbacks: list[HoldingsCallback] = []
        self.last_quote_at: datetime | None = None
        self.last_recommendation_at: datetime | None = None

        self._tasks = [
            PeriodicTask(
                "quotes",
                self.collect_quotes,
                quote_interval,
                timeout=self.cycle_timeout,
            ),
            PeriodicTask(
                "recommendations",
                self.refresh_recommendations,
                recommendation_interval,
                timeout=self.cycle_timeout,
            ),
            PeriodicTask(
                "history-flush",
                self.flush_history,
                flush_interval,
                run_immediately=False,
            ),
        ]
        if holdings_source is not None:
            self._tasks.append(
                PeriodicTask(
                    "holdings",
                    self.refresh_holdings,
                    holdings_interval,
                    timeout=self.cycle_timeout,
                )
            )

    def on_recommendations(self, callback: RecommendationsCallback) -> None:
        """Register callback for each new recommendation mapping."""
        self._recommendation_callbacks.append(callback)

    def on_holdings(self, callback: HoldingsCallback) -> None:
        """Register callback for each new holdings snapshot."""
        self._holdings_callbacks.append(callback)

    @property
    def current_recommendations(self) -> dict[str, Recommendation]:
        return dict(self._recommendations)

    @property
    def current_holdings(self) -> list[HoldingsSnapshot]:
        return list(self._holdings)

    @property
    def tasks(self) -> list[PeriodicTask]:
        return list(self._tasks)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start every periodic task. The window must already be open."""
        for task in self._tasks:
            task.start()
        logger.info(f"Ingestion started for {', '.join(self.symbols)}")

    async def stop(self) -> None:
        """Stop scheduling and flush the window one last time."""
        for task in self._tasks:
            await task.stop()
        await self.window.close()
        logger.info("Ingestion stopped")

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def parse_quotes(self, payload: Any, now: datetime) -> list[PricePoint]:
        """
        Turn a market data payload into price points.

        Entries for unknown symbols or with a non-numeric / non-positive
        price are dropped.

        Returns:
            Valid points, or an empty list if the payload is not a list
        """
        if not isinstance(payload, list):
            logger.warning(f"Market data returned {type(payload).__name__}, expected list")
            return []

        wanted = set(self.symbols)
        points = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            quote = Quote(symbol=item.get("symbol"), price=item.get("price"))
            if quote.symbol not in wanted:
                continue
            price = quote.parsed_price()
            if price is None:
                logger.debug(f"Dropping non-numeric price for {quote.symbol}: {quote.price!r}")
                continue
            points.append(PricePoint(timestamp=now, symbol=quote.symbol, price=price))

        return points

    async def collect_quotes(self) -> int:
        """Fetch one round of quotes into the window.

        The window is pruned at the end of every cycle, including cycles
        where the fetch failed or returned nothing usable.

        Returns:
            Number of points appended
        """
        try:
            return await self._append_quotes()
        finally:
            self.window.prune(self._clock())

    async def _append_quotes(self) -> int:
        try:
            payload = await asyncio.wait_for(
                self.market_data.get_best_bid_ask(self.symbols),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Quote fetch timed out after {self.request_timeout}s")
            return 0
        except Exception as e:
            logger.warning(f"Quote fetch failed: {e}")
            return 0

        now = self._clock()
        points = self.parse_quotes(payload, now)
        if not points:
            logger.debug("No valid quotes this cycle")
            return 0

        for point in points:
            self.window.append(point)
        self.last_quote_at = now
        return len(points)

    async def _publish(self, name: str, callback, *args) -> None:
        """Await one subscriber callback, bounded by request_timeout."""
        try:
            await asyncio.wait_for(callback(*args), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name} callback timed out after {self.request_timeout}s")
        except Exception as e:
            logger.warning(f"{name} callback error: {e}")

    async def refresh_recommendations(self) -> dict[str, Recommendation]:
        """Recompute and publish the recommendation mapping."""
        now = self._clock()
        recommendations = self.engine.analyze(self.window, self.symbols, now)
        self._recommendations = recommendations
        self.last_recommendation_at = now

        for callback in self._recommendation_callbacks:
            await self._publish("Recommendation", callback, recommendations)

        return recommendations

    async def refresh_holdings(self) -> list[HoldingsSnapshot] | None:
        """Revalue account holdings and publish them."""
        if self.holdings_source is None:
            return None

        try:
            response = await asyncio.wait_for(
                self.holdings_source.get_holdings(),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Holdings fetch timed out after {self.request_timeout}s")
            return None
        except Exception as e:
            logger.warning(f"Holdings fetch failed: {e}")
            return None

        holdings = build_holdings_snapshot(response, self.window)
        if holdings is None:
            logger.warning("Holdings response was malformed, skipping")
            return None

        self._holdings = holdings
        recommendations = self.current_recommendations
        for callback in self._holdings_callbacks:
            await self._publish("Holdings", callback, holdings, recommendations)

        return holdings

    async def flush_history(self) -> None:
        """Persist the window; failures are retried on the next cycle."""
        try:
            await self.window.flush()
        except Exception as e:
            logger.error(f"Price history flush failed: {e}")
