"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

# Try to use uvloop for better performance (Unix only)
try:
    import uvloop
    uvloop.install()
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from app.api import router, manager, websocket_endpoint
from app.clients import RobinhoodCryptoClient
from app.config import get_settings
from app.services import IngestionService, OrderService
from app.storage import JsonHistoryStore
from core.decision_engine import DecisionEngine
from core.price_window import SlidingPriceWindow

# Startup timeout in seconds
STARTUP_TIMEOUT = 30

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Crypto Signal Advisor...")
    logger.info(f"Event loop: {'uvloop' if _UVLOOP_ENABLED else 'asyncio'}")

    settings = get_settings()

    # Malformed credentials or an unreadable history abort startup
    exchange = RobinhoodCryptoClient.from_settings(settings)
    window = SlidingPriceWindow(
        retention=settings.retention,
        store=JsonHistoryStore(settings.history_path),
    )
    ingestion: IngestionService | None = None

    try:
        try:
            await asyncio.wait_for(window.open(), timeout=STARTUP_TIMEOUT)
        except asyncio.TimeoutError:
            raise RuntimeError(f"Loading price history timed out after {STARTUP_TIMEOUT}s")

        engine = DecisionEngine(analysis_horizon=settings.analysis_horizon)
        ingestion = IngestionService(
            market_data=exchange,
            window=window,
            engine=engine,
            symbols=settings.symbols,
            quote_interval=settings.quote_interval,
            recommendation_interval=settings.recommendation_interval,
            flush_interval=settings.history_flush_interval,
            request_timeout=settings.request_timeout,
            holdings_source=exchange,
            holdings_interval=settings.holdings_interval,
        )

        # Register callbacks
        ingestion.on_recommendations(manager.send_recommendations)
        ingestion.on_holdings(manager.send_holdings)

        # Expose services to API routes via app.state
        app.state.exchange = exchange
        app.state.ingestion = ingestion
        app.state.order_service = OrderService(gateway=exchange, market_data=exchange)

        await ingestion.start()

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await exchange.close()
        raise  # Re-raise to prevent app from starting in broken state

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.order_service = None

    # Stops scheduling and writes the final history snapshot
    try:
        await ingestion.stop()
    except Exception as e:
        logger.warning(f"Error stopping ingestion: {e}")

    app.state.ingestion = None
    app.state.exchange = None
    await exchange.close()

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Crypto Signal Advisor",
    description="Advisory buy/sell/hold recommendations from live crypto quotes",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Crypto Signal Advisor",
        "version": "0.1.0",
        "docs": "/docs",
        "event_loop": "uvloop" if _UVLOOP_ENABLED else "asyncio",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
