"""
Command-line access to the trading account and recommendations.

Usage:
    crypto-signals account               # account number, status, buying power
    crypto-signals pairs BTC-USD ETH-USD # trading pair limits
    crypto-signals holdings              # held assets
    crypto-signals price BTC-USD         # live best bid/ask price
    crypto-signals buy BTC-USD 0.001     # market buy
    crypto-signals sell BTC-USD 0.001    # limit sell at the latest price
    crypto-signals cancel ORDER_ID       # cancel an open order
    crypto-signals recommend             # classify the persisted price history
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

from app.clients import CredentialsError, RobinhoodCryptoClient
from app.config import get_settings
from app.services import OrderService
from app.storage import HistoryLoadError, JsonHistoryStore
from core.decision_engine import DecisionEngine
from core.price_window import SlidingPriceWindow

logger = logging.getLogger(__name__)


async def show_account(client: RobinhoodCryptoClient) -> int:
    account = await client.get_account()
    if not account:
        print("Could not load account information.")
        return 1
    print("\nAccount Information:")
    print(f"Account Number: {account.get('account_number')}")
    print(f"Status: {account.get('status')}")
    print(f"Buying Power: {account.get('buying_power')} {account.get('buying_power_currency')}\n")
    return 0


async def show_pairs(client: RobinhoodCryptoClient, symbols: list[str]) -> int:
    response = await client.get_trading_pairs(symbols or None)
    if not isinstance(response, dict):
        print("Could not load trading pairs.")
        return 1
    print("\nAvailable Trading Pairs:")
    for pair in response.get("results", []):
        print(f"Symbol: {pair.get('symbol')}, Status: {pair.get('status')}")
        print(f"Min Order Size: {pair.get('min_order_size')}, Max Order Size: {pair.get('max_order_size')}\n")
    return 0


async def show_holdings(client: RobinhoodCryptoClient, assets: list[str]) -> int:
    response = await client.get_holdings(assets or None)
    if not isinstance(response, dict):
        print("Could not load holdings.")
        return 1
    print("\nHoldings:")
    for holding in response.get("results", []):
        print(f"Asset: {holding.get('asset_code')}, Quantity: {holding.get('total_quantity')}")
    print()
    return 0


async def show_price(client: RobinhoodCryptoClient, symbol: str) -> int:
    quotes = await client.get_best_bid_ask([symbol])
    for quote in quotes:
        if quote.get("symbol") == symbol:
            print(f"{symbol}: {quote.get('price')}")
            return 0
    print(f"No price available for {symbol}.")
    return 1


async def trade(client: RobinhoodCryptoClient, side: str, symbol: str, quantity: str) -> int:
    service = OrderService(gateway=client, market_data=client)
    result = await service.place_trade(symbol, side, quantity)
    if result.success:
        print(f"\n{result.message}\n{result.order}\n")
        return 0
    print(f"\nOrder placement failed: {result.message}\n")
    return 1


async def cancel(client: RobinhoodCryptoClient, order_id: str) -> int:
    service = OrderService(gateway=client, market_data=client)
    result = await service.cancel(order_id)
    print(f"\n{result.message}\n")
    return 0 if result.success else 1


async def recommend(history_path: str, symbols: list[str]) -> int:
    settings = get_settings()
    window = SlidingPriceWindow(
        retention=settings.retention,
        store=JsonHistoryStore(history_path),
    )
    await window.open()

    symbols = symbols or window.symbols
    engine = DecisionEngine(analysis_horizon=settings.analysis_horizon)
    recommendations = engine.analyze(window, symbols, datetime.now(timezone.utc))

    if not recommendations:
        print("Not enough recent prices for any symbol.")
        return 0
    for symbol, rec in recommendations.items():
        print(f"{symbol:<12} {rec.action.value.upper():<5} {rec.rationale}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crypto-signals",
        description="Crypto trading account tool and recommendation viewer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("account", help="Show account information")

    pairs = sub.add_parser("pairs", help="Show trading pairs")
    pairs.add_argument("symbols", nargs="*", help="Symbols (default: all)")

    holdings = sub.add_parser("holdings", help="Show holdings")
    holdings.add_argument("assets", nargs="*", help="Asset codes (default: all)")

    price = sub.add_parser("price", help="Show the current price")
    price.add_argument("symbol", type=str.upper)

    for side in ("buy", "sell"):
        p = sub.add_parser(side, help=f"Place a {side} order")
        p.add_argument("symbol", type=str.upper, help="Trading pair, e.g. BTC-USD")
        p.add_argument("quantity", help="Asset quantity")

    c = sub.add_parser("cancel", help="Cancel an order")
    c.add_argument("order_id")

    r = sub.add_parser("recommend", help="Classify the persisted price history")
    r.add_argument("--history", type=str, help="History file (default: settings)")
    r.add_argument("--symbol", "-s", action="append", default=[], help="Symbol (repeatable)")

    return parser


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()

    if args.command == "recommend":
        return await recommend(args.history or settings.history_path, args.symbol)

    client = RobinhoodCryptoClient.from_settings(settings)
    try:
        if args.command == "account":
            return await show_account(client)
        if args.command == "pairs":
            return await show_pairs(client, args.symbols)
        if args.command == "holdings":
            return await show_holdings(client, args.assets)
        if args.command == "price":
            return await show_price(client, args.symbol)
        if args.command in ("buy", "sell"):
            return await trade(client, args.command, args.symbol, args.quantity)
        if args.command == "cancel":
            return await cancel(client, args.order_id)
        return 2
    finally:
        await client.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(run(args))
    except (CredentialsError, HistoryLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
