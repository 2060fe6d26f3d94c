"""REST API routes."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.models import HoldingsSnapshot, Recommendation
from app.services import IngestionService, OrderResult, OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class SystemStatus(BaseModel):
    """System status response."""

    status: str
    version: str
    symbols: list[str]
    price_points: int
    rule_table_version: str
    last_quote_at: Optional[datetime] = None
    last_recommendation_at: Optional[datetime] = None


class PriceResponse(BaseModel):
    """Current price response."""

    symbol: str
    price: Optional[float] = None


class PricePointResponse(BaseModel):
    """One point of price history."""

    timestamp: datetime
    price: float


class OrderRequest(BaseModel):
    """Trade intent from a user."""

    symbol: str
    action: str  # "buy" or "sell"
    amount: str


# Dependencies
def get_ingestion(request: Request) -> IngestionService:
    ingestion = getattr(request.app.state, "ingestion", None)
    if ingestion is None:
        raise HTTPException(status_code=503, detail="Ingestion is not running")
    return ingestion


def get_order_service(request: Request) -> OrderService:
    service = getattr(request.app.state, "order_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Order service is not available")
    return service


def get_exchange(request: Request):
    client = getattr(request.app.state, "exchange", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Exchange client is not available")
    return client


@router.get("/status", response_model=SystemStatus)
async def get_status(ingestion: IngestionService = Depends(get_ingestion)):
    """Get system status."""
    return SystemStatus(
        status="running",
        version="0.1.0",
        symbols=ingestion.symbols,
        price_points=len(ingestion.window),
        rule_table_version=ingestion.engine.rule_table_version,
        last_quote_at=ingestion.last_quote_at,
        last_recommendation_at=ingestion.last_recommendation_at,
    )


@router.get("/recommendations", response_model=dict[str, Recommendation])
async def get_recommendations(ingestion: IngestionService = Depends(get_ingestion)):
    """Get the latest recommendation per symbol."""
    return ingestion.current_recommendations


@router.get("/holdings", response_model=list[HoldingsSnapshot])
async def get_holdings(ingestion: IngestionService = Depends(get_ingestion)):
    """Get the latest valued holdings."""
    return ingestion.current_holdings


@router.get("/prices/current", response_model=PriceResponse)
async def get_current_price(
    symbol: str = Query(..., description="Trading pair, e.g. BTC-USD"),
    exchange=Depends(get_exchange),
):
    """Get the live best bid/ask price for a symbol."""
    quotes = await exchange.get_best_bid_ask([symbol])
    price = None
    for quote in quotes:
        if quote.get("symbol") == symbol:
            try:
                price = float(quote.get("price"))
            except (TypeError, ValueError):
                price = None
            break
    return PriceResponse(symbol=symbol, price=price)


@router.get("/prices/history", response_model=list[PricePointResponse])
async def get_price_history(
    symbol: str = Query(..., description="Trading pair, e.g. BTC-USD"),
    minutes: int = Query(60, ge=1, le=24 * 60, description="Lookback in minutes"),
    ingestion: IngestionService = Depends(get_ingestion),
):
    """Get retained prices for a symbol."""
    since = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    return [
        PricePointResponse(timestamp=p.timestamp, price=p.price)
        for p in ingestion.window.points(symbol)
        if p.timestamp >= since
    ]


@router.get("/account")
async def get_account(exchange=Depends(get_exchange)) -> dict[str, Any]:
    """Get trading account information."""
    account = await exchange.get_account()
    if account is None:
        raise HTTPException(status_code=502, detail="Could not load account")
    return account


@router.get("/trading-pairs")
async def get_trading_pairs(
    symbol: Optional[list[str]] = Query(None, description="Filter by symbol"),
    exchange=Depends(get_exchange),
) -> list[dict[str, Any]]:
    """Get tradable pairs."""
    response = await exchange.get_trading_pairs(symbol)
    if not isinstance(response, dict):
        raise HTTPException(status_code=502, detail="Could not load trading pairs")
    return response.get("results", [])


@router.post("/orders", response_model=OrderResult)
async def place_order(
    order: OrderRequest,
    service: OrderService = Depends(get_order_service),
):
    """
    Place a user trade.

    Buys are market orders; sells are limit orders at the latest price.
    Validation failures come back as success=False with a message.
    """
    return await service.place_trade(order.symbol, order.action, order.amount)


@router.post("/orders/{order_id}/cancel", response_model=OrderResult)
async def cancel_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    """Cancel an order by id."""
    return await service.cancel(order_id)
