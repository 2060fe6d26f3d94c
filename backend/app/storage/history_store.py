"""JSON file storage for the raw price history.

Layout: a flat JSON list of {timestamp, symbol, price} records in
insertion order. The whole file is rewritten on every save (temp file
then atomic replace); there are no incremental appends.

A missing file is an empty history. A file that exists but cannot be
read or parsed raises HistoryLoadError, which aborts startup.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import orjson

from core.models import PricePoint

logger = logging.getLogger(__name__)


class HistoryLoadError(RuntimeError):
    """Persisted price history exists but cannot be loaded."""


class JsonHistoryStore:
    """Price history persisted as one JSON document."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> list[PricePoint]:
        """Load the stored history.

        Raises:
            HistoryLoadError: If the file is unreadable or malformed
        """
        return await asyncio.to_thread(self._load_sync)

    async def save(self, points: list[PricePoint]) -> None:
        """Replace the stored history with ``points``."""
        await asyncio.to_thread(self._save_sync, points)

    def _load_sync(self) -> list[PricePoint]:
        if not self.path.exists():
            logger.info(f"No price history at {self.path}, starting empty")
            return []

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise HistoryLoadError(f"Cannot read price history {self.path}: {e}") from e

        if not raw.strip():
            return []

        try:
            records = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise HistoryLoadError(f"Price history {self.path} is not valid JSON: {e}") from e

        if not isinstance(records, list):
            raise HistoryLoadError(
                f"Price history {self.path} must be a list, got {type(records).__name__}"
            )

        points = []
        for index, record in enumerate(records):
            try:
                points.append(PricePoint.from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                raise HistoryLoadError(
                    f"Malformed price record #{index} in {self.path}: {e}"
                ) from e

        return points

    def _save_sync(self, points: list[PricePoint]) -> None:
        payload = orjson.dumps([p.to_record() for p in points])

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, self.path)
