"""
Journal - Trading journal, strategy notes and bot logs from the backend.

The backend is a PostgREST API (Supabase). Three tables are read:
trade_journal (one row per bot decision with its reasoning), trading_notes
(a single shared strategy document, id=1) and bot_logs.

Usage:
    async with JournalClient(url, key) as journal:
        entry = await journal.fetch_reasoning("AAPL")
        logs = await journal.fetch_recent_logs(limit=30)
        notes = await journal.fetch_notes()
        await journal.save_notes(notes + "\\nAvoid earnings week.")
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from beacon.config import settings
from beacon.errors import BackendError
from beacon.utils.decoding import decode_integer, decode_number

logger = logging.getLogger(__name__)

NOTES_ROW_ID = 1


@dataclass(frozen=True)
class TradeLog:
    """A journal entry explaining one bot trade."""

    id: int
    timestamp: str
    ticker: str
    action: str
    shares: float
    price: float
    reason: str

    @classmethod
    def from_row(cls, row: dict) -> "TradeLog":
        return cls(
            id=decode_integer(row.get("id")),
            timestamp=str(row.get("timestamp") or ""),
            ticker=str(row.get("ticker") or ""),
            action=str(row.get("action") or ""),
            shares=decode_number(row.get("shares")),
            price=decode_number(row.get("price")),
            reason=str(row.get("reason") or ""),
        )


@dataclass(frozen=True)
class BotLog:
    """A log line emitted by the trading bot."""

    id: int
    timestamp: str
    level: str
    message: str

    @classmethod
    def from_row(cls, row: dict) -> "BotLog":
        return cls(
            id=decode_integer(row.get("id")),
            timestamp=str(row.get("timestamp") or ""),
            level=str(row.get("level") or "INFO"),
            message=str(row.get("message") or ""),
        )


class JournalClient:
    """Read and update the trading journal backend."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = (url or settings.journal_url).rstrip("/")
        self._key = key or settings.journal_key
        timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=f"{self.url}/rest/v1", timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JournalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"apikey": self._key, "Authorization": f"Bearer {self._key}"}
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        """Send a request to a table endpoint.

        Raises:
            BackendError: On transport errors or any non-2xx status
        """
        logger.debug(f"{method} {table} {kwargs.get('params')}")
        try:
            response = await self._client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(f"{method} {table} failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {table} failed: {e}") from e
        return response

    async def _select(self, table: str, params: dict[str, str]) -> list[dict]:
        response = await self._request("GET", table, params={"select": "*", **params}, headers=self._headers())
        try:
            rows = response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {table}") from e
        if not isinstance(rows, list):
            raise BackendError(f"Unexpected response from {table}: expected a list of rows")
        return [row for row in rows if isinstance(row, dict)]

    # -------------------------------------------------------------------------
    # Trade journal
    # -------------------------------------------------------------------------

    async def fetch_reasoning(self, ticker: str) -> Optional[TradeLog]:
        """Latest journal entry for a ticker, or None if it has none."""
        rows = await self._select(
            "trade_journal",
            {"ticker": f"eq.{ticker}", "order": "timestamp.desc", "limit": "1"},
        )
        return TradeLog.from_row(rows[0]) if rows else None

    async def fetch_recent_logs(self, limit: Optional[int] = None) -> list[TradeLog]:
        """Most recent journal entries, newest first."""
        limit = limit if limit is not None else settings.journal_recent_limit
        rows = await self._select("trade_journal", {"order": "timestamp.desc", "limit": str(limit)})
        return [TradeLog.from_row(row) for row in rows]

    # -------------------------------------------------------------------------
    # Strategy notes
    # -------------------------------------------------------------------------

    async def fetch_notes(self) -> str:
        """Content of the shared strategy notes document."""
        rows = await self._select("trading_notes", {"id": f"eq.{NOTES_ROW_ID}"})
        if not rows:
            raise BackendError("Strategy notes row not found")
        return str(rows[0].get("content") or "")

    async def save_notes(self, content: str) -> None:
        """Overwrite the shared strategy notes."""
        payload = {
            "content": content,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        await self._request(
            "PATCH",
            "trading_notes",
            params={"id": f"eq.{NOTES_ROW_ID}"},
            json=payload,
            headers=self._headers({"Prefer": "return=minimal"}),
        )
        logger.info(f"Saved strategy notes ({len(content)} chars)")

    # -------------------------------------------------------------------------
    # Bot logs
    # -------------------------------------------------------------------------

    async def fetch_bot_logs(self, limit: Optional[int] = None) -> list[BotLog]:
        """Most recent bot log lines, newest first."""
        limit = limit if limit is not None else settings.bot_logs_limit
        rows = await self._select("bot_logs", {"order": "timestamp.desc", "limit": str(limit)})
        return [BotLog.from_row(row) for row in rows]
