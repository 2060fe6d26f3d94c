"""Robinhood Crypto REST API client.

Implements both collaborators the service talks to over HTTP:
- market data (best bid/ask quotes)
- order gateway (orders, holdings, trading pairs, account)

Every request is signed with the account's ed25519 key. Transport and
HTTP errors are logged and surface as ``None`` (or an empty quote list)
so that callers can skip the cycle instead of crashing.
"""

import base64
import binascii
import logging
import time
from typing import Any, Callable

import httpx
import orjson
from nacl.signing import SigningKey

logger = logging.getLogger(__name__)


class CredentialsError(ValueError):
    """API key or private key is missing or malformed."""


def load_signing_key(private_key_b64: str) -> SigningKey:
    """
    Decode a base64 ed25519 private key.

    Accepts either the 32-byte seed or the 64-byte secret key
    (seed followed by the public key).

    Raises:
        CredentialsError: If the key is not valid base64 or has the wrong length
    """
    if not private_key_b64:
        raise CredentialsError("Private key is not configured")

    try:
        raw = base64.b64decode(private_key_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CredentialsError(f"Private key is not valid base64: {e}") from e

    if len(raw) == 64:
        raw = raw[:32]
    elif len(raw) != 32:
        raise CredentialsError(
            f"Invalid private key length: must be 32 or 64 bytes, got {len(raw)}"
        )

    return SigningKey(raw)


class RobinhoodCryptoClient:
    """Robinhood Crypto trading API client."""

    BASE_URL = "https://trading.robinhood.com"

    def __init__(
        self,
        api_key: str,
        private_key: str,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            api_key: Robinhood API key
            private_key: base64 ed25519 private key
            base_url: API root
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
            clock: Source of unix time for request timestamps

        Raises:
            CredentialsError: If the credentials are malformed
        """
        if not api_key:
            raise CredentialsError("API key is not configured")

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._signing_key = load_signing_key(private_key)
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings) -> "RobinhoodCryptoClient":
        return cls(
            api_key=settings.robinhood_api_key,
            private_key=settings.robinhood_private_key,
            base_url=settings.robinhood_base_url,
            timeout=settings.request_timeout,
        )

    @property
    def verify_key(self):
        """Public half of the signing key."""
        return self._signing_key.verify_key

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def sign(self, path: str, method: str, body: str = "") -> dict[str, str]:
        """
        Build authentication headers for a request.

        The signed message is ``api_key + timestamp + path + method + body``
        where ``path`` includes the query string.
        """
        timestamp = int(self._clock())
        message = f"{self.api_key}{timestamp}{path}{method}{body}"
        signed = self._signing_key.sign(message.encode("utf-8"))

        return {
            "x-api-key": self.api_key,
            "x-signature": base64.b64encode(signed.signature).decode("utf-8"),
            "x-timestamp": str(timestamp),
        }

    async def _request(
        self,
        method: str,
        path: str,
        body: str = "",
        allow_text: bool = False,
    ) -> Any:
        """Make a signed API request. Returns parsed JSON, or None on failure.

        With ``allow_text``, a successful non-JSON response is returned as
        ``{"detail": <text>}`` instead of being treated as a failure.
        """
        headers = self.sign(path, method, body)
        if body:
            headers["Content-Type"] = "application/json"

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                path,
                content=body.encode("utf-8") if body else None,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"API request error: {method} {path} -> "
                f"{e.response.status_code} {e.response.text[:200]}"
            )
            return None
        except httpx.HTTPError as e:
            logger.error(f"API request error: {method} {path}: {e!r}")
            return None

        try:
            return response.json()
        except ValueError as e:
            if allow_text:
                return {"detail": response.text}
            logger.error(f"API response is not JSON: {method} {path}: {e}")
            return None

    @staticmethod
    def _query(name: str, values: list[str] | None) -> str:
        if not values:
            return ""
        return "?" + "&".join(f"{name}={v}" for v in values)

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_best_bid_ask(self, symbols: list[str]) -> list[dict[str, Any]]:
        """
        Fetch the current best bid/ask price for each symbol.

        Args:
            symbols: Trading pairs (e.g., ["BTC-USD", "ETH-USD"])

        Returns:
            List of {"symbol", "price"} entries; empty on failure
        """
        path = f"/api/v1/crypto/marketdata/best_bid_ask/{self._query('symbol', symbols)}"
        data = await self._request("GET", path)

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            if data is not None:
                logger.warning(f"Unexpected best bid/ask payload: {str(data)[:200]}")
            return []

        return [
            {"symbol": item.get("symbol"), "price": item.get("price")}
            for item in results
            if isinstance(item, dict)
        ]

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def get_account(self) -> dict[str, Any] | None:
        return await self._request("GET", "/api/v1/crypto/trading/accounts/")

    async def get_trading_pairs(self, symbols: list[str] | None = None) -> dict[str, Any] | None:
        path = f"/api/v1/crypto/trading/trading_pairs/{self._query('symbol', symbols)}"
        return await self._request("GET", path)

    async def get_holdings(self, asset_codes: list[str] | None = None) -> dict[str, Any] | None:
        path = f"/api/v1/crypto/trading/holdings/{self._query('asset_code', asset_codes)}"
        return await self._request("GET", path)

    async def place_order(
        self,
        client_order_id: str,
        side: str,
        order_type: str,
        symbol: str,
        config: dict[str, str],
    ) -> dict[str, Any] | None:
        """
        Submit an order.

        Args:
            client_order_id: Idempotency key (UUID4)
            side: "buy" or "sell"
            order_type: "market" or "limit"
            symbol: Trading pair
            config: Order config, sent as ``<order_type>_order_config``

        Returns:
            Order record, or None on failure
        """
        body = orjson.dumps({
            "client_order_id": client_order_id,
            "side": side,
            "type": order_type,
            "symbol": symbol,
            f"{order_type}_order_config": config,
        }).decode("utf-8")
        return await self._request("POST", "/api/v1/crypto/trading/orders/", body)

    async def cancel_order(self, order_id: str) -> dict[str, Any] | None:
        """Cancel an open order. Returns the response record, or None on failure."""
        path = f"/api/v1/crypto/trading/orders/{order_id}/cancel/"
        return await self._request("POST", path, allow_text=True)
