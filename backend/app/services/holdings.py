"""Holdings snapshot assembly."""

import logging
from typing import Any

from core.models import HoldingsSnapshot
from core.price_window import SlidingPriceWindow

logger = logging.getLogger(__name__)

QUOTE_CURRENCY = "USD"


def build_holdings_snapshot(
    response: dict[str, Any] | None,
    window: SlidingPriceWindow,
    quote_currency: str = QUOTE_CURRENCY,
) -> list[HoldingsSnapshot] | None:
    """
    Value the gateway's holdings at the latest known prices.

    Args:
        response: Raw holdings response ({"results": [...]})
        window: Price window providing the latest price per symbol
        quote_currency: Quote side of the symbol used for valuation

    Returns:
        One snapshot per holding, or None if the response is unusable
    """
    results = response.get("results") if isinstance(response, dict) else None
    if not isinstance(results, list):
        return None

    snapshots = []
    for holding in results:
        if not isinstance(holding, dict) or not holding.get("asset_code"):
            continue

        asset = str(holding["asset_code"])
        try:
            quantity = float(holding.get("total_quantity", 0))
        except (TypeError, ValueError):
            logger.warning(f"Holding {asset} has non-numeric quantity, skipping")
            continue

        latest = window.latest(f"{asset}-{quote_currency}")
        usd_value = quantity * latest.price if latest else 0.0

        snapshots.append(
            HoldingsSnapshot(
                asset=asset,
                quantity=quantity,
                usd_value=usd_value,
                detail=holding,
            )
        )

    return snapshots
