"""WebSocket endpoint for real-time updates."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from app.models import HoldingsSnapshot, Recommendation

logger = logging.getLogger(__name__)

UPDATE_HOLDINGS = "updateHoldings"
UPDATE_RECOMMENDATIONS = "updateRecommendations"

# Seconds a single client may take to accept one message
SEND_TIMEOUT = 2.0


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def recommendations_payload(recommendations: dict[str, Recommendation]) -> dict:
    return {
        symbol: rec.model_dump(mode="json")
        for symbol, rec in recommendations.items()
    }


def holdings_payload(
    holdings: list[HoldingsSnapshot],
    recommendations: dict[str, Recommendation] | None = None,
) -> dict:
    data: dict[str, Any] = {"holdings": [h.model_dump(mode="json") for h in holdings]}
    if recommendations is not None:
        data["recommendations"] = recommendations_payload(recommendations)
    return data


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "updateHoldings" or "updateRecommendations"
    data: dict[str, Any]
    timestamp: datetime

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump())


class ConnectionManager:
    """Manage WebSocket connections and broadcasts."""

    def __init__(self, send_timeout: float = SEND_TIMEOUT):
        self._connections: list[WebSocket] = []
        self._lock = asyncio.Lock()
        self.send_timeout = send_timeout

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self._connections)}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                self._connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self._connections)}")

    async def _send(self, websocket: WebSocket, message_text: str) -> bool:
        try:
            await asyncio.wait_for(
                websocket.send_text(message_text),
                timeout=self.send_timeout,
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(f"WebSocket send timed out after {self.send_timeout}s, dropping client")
        except Exception as e:
            logger.warning(f"Failed to send message: {e}")
        return False

    async def broadcast(self, message: WebSocketMessage) -> None:
        """Broadcast message to all connected clients.

        Sends run concurrently outside the lock; a client that fails or
        does not accept the message within send_timeout is dropped.
        """
        async with self._lock:
            connections = list(self._connections)
        if not connections:
            return

        message_text = message.to_json()
        results = await asyncio.gather(
            *(self._send(ws, message_text) for ws in connections)
        )

        disconnected = [ws for ws, ok in zip(connections, results) if not ok]
        if disconnected:
            async with self._lock:
                for ws in disconnected:
                    if ws in self._connections:
                        self._connections.remove(ws)

    async def send_recommendations(self, recommendations: dict[str, Recommendation]) -> None:
        """Broadcast the latest recommendation mapping."""
        message = WebSocketMessage(
            type=UPDATE_RECOMMENDATIONS,
            data=recommendations_payload(recommendations),
            timestamp=_utcnow(),
        )
        await self.broadcast(message)

    async def send_holdings(
        self,
        holdings: list[HoldingsSnapshot],
        recommendations: dict[str, Recommendation] | None = None,
    ) -> None:
        """Broadcast valued holdings, with the current recommendations attached."""
        message = WebSocketMessage(
            type=UPDATE_HOLDINGS,
            data=holdings_payload(holdings, recommendations),
            timestamp=_utcnow(),
        )
        await self.broadcast(message)

    @property
    def connection_count(self) -> int:
        """Get number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


async def send_catch_up(websocket: WebSocket) -> None:
    """Push the current holdings and recommendations to one new subscriber."""
    ingestion = getattr(websocket.app.state, "ingestion", None)
    if ingestion is None:
        return

    recommendations = ingestion.current_recommendations
    await websocket.send_text(WebSocketMessage(
        type=UPDATE_HOLDINGS,
        data=holdings_payload(ingestion.current_holdings, recommendations),
        timestamp=_utcnow(),
    ).to_json())
    await websocket.send_text(WebSocketMessage(
        type=UPDATE_RECOMMENDATIONS,
        data=recommendations_payload(recommendations),
        timestamp=_utcnow(),
    ).to_json())


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Messages sent to clients:
    - updateHoldings: {holdings, recommendations}
    - updateRecommendations: {symbol: {symbol, action, rationale}}

    Both are pushed once right after connecting, then on their own cadence.

    Message format:
    {
        "type": "updateRecommendations",
        "data": {...},
        "timestamp": "2024-01-01T00:00:00+00:00"
    }
    """
    await manager.connect(websocket)

    try:
        await send_catch_up(websocket)

        # Keep connection alive and handle incoming messages
        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=60.0,
                )

                try:
                    message = orjson.loads(data)
                except orjson.JSONDecodeError:
                    await websocket.send_text(_orjson_dumps({
                        "type": "error",
                        "data": {"message": "Invalid JSON"},
                        "timestamp": _utcnow().isoformat(),
                    }))
                    continue

                await handle_client_message(websocket, message)

            except asyncio.TimeoutError:
                # Send ping to keep connection alive
                await websocket.send_text(_orjson_dumps({
                    "type": "ping",
                    "data": {},
                    "timestamp": _utcnow().isoformat(),
                }))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, message: Any) -> None:
    """Handle incoming message from client."""
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        await websocket.send_text(_orjson_dumps({
            "type": "pong",
            "data": {},
            "timestamp": _utcnow().isoformat(),
        }))
    elif msg_type == "refresh":
        await send_catch_up(websocket)
    else:
        await websocket.send_text(_orjson_dumps({
            "type": "error",
            "data": {"message": f"Unknown message type: {msg_type}"},
            "timestamp": _utcnow().isoformat(),
        }))
