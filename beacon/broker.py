"""
Broker - REST client for account, positions, fills and equity history.

Usage:
    async with Broker() as broker:
        account = await broker.fetch_account(credentials)
        positions = await broker.fetch_positions(credentials)
        history = await broker.fetch_history(credentials, RangeSelector.ONE_MONTH)

Each fetch either returns fully decoded records or raises BadResponse.
There is no retry: the next poll is the retry.
"""

import logging
from typing import Any, Optional, Union

import httpx

from beacon.config import settings
from beacon.errors import BadResponse, Unauthenticated
from beacon.models import (
    AccountSnapshot,
    Credentials,
    EquityPoint,
    Position,
    RangeSelector,
    Trade,
    equity_points_from_api,
)

logger = logging.getLogger(__name__)

KEY_HEADER = "APCA-API-KEY-ID"
SECRET_HEADER = "APCA-API-SECRET-KEY"

ACTIVITIES_PATH = "/v2/account/activities"
ACCOUNT_PATH = "/v2/account"
POSITIONS_PATH = "/v2/positions"
HISTORY_PATH = "/v2/account/portfolio/history"


class Broker:
    """Authenticated reads against the brokerage REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the broker client.

        Args:
            base_url: API root (defaults to settings.broker_base_url)
            timeout: Request timeout in seconds
            client: Pre-built httpx client; the broker will not close it
        """
        self.base_url = (base_url or settings.broker_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def close(self) -> None:
        """Close the HTTP client if this broker created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Broker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    @staticmethod
    def _headers(credentials: Optional[Credentials]) -> dict[str, str]:
        if credentials is None:
            raise Unauthenticated("Broker credentials are not set")
        return {KEY_HEADER: credentials.api_key, SECRET_HEADER: credentials.api_secret}

    async def _get_json(
        self,
        credentials: Credentials,
        path: str,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        """GET a path and return the decoded JSON body.

        Raises:
            BadResponse: On transport errors, non-200 status or invalid JSON
        """
        logger.debug(f"GET {self.base_url}{path} params={params}")
        try:
            response = await self._client.get(path, params=params, headers=self._headers(credentials))
        except httpx.HTTPError as e:
            raise BadResponse(f"Request to {path} failed: {e}") from e

        if response.status_code != 200:
            raise BadResponse(f"Unexpected status from {path}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise BadResponse(f"Invalid JSON from {path}", status_code=response.status_code) from e

    # -------------------------------------------------------------------------
    # Fetches
    # -------------------------------------------------------------------------

    async def fetch_trades(self, credentials: Credentials) -> list[Trade]:
        """Fetch recent fills.

        The whole list is rejected if any record cannot be decoded; a partial
        trade list is never returned.
        """
        data = await self._get_json(credentials, ACTIVITIES_PATH, params={"activity_types": "FILL"})
        if not isinstance(data, list):
            raise BadResponse("Unexpected response from broker: trades is not a list")
        try:
            trades = [Trade.from_api(item) for item in data]
        except (ValueError, AttributeError) as e:
            raise BadResponse(f"Unexpected response from broker: {e}") from e
        logger.debug(f"Fetched {len(trades)} trades")
        return trades

    async def fetch_account(self, credentials: Credentials) -> AccountSnapshot:
        """Fetch the account summary."""
        data = await self._get_json(credentials, ACCOUNT_PATH)
        if not isinstance(data, dict):
            raise BadResponse("Unexpected response from broker: account is not an object")
        return AccountSnapshot.from_api(data)

    async def fetch_positions(self, credentials: Credentials) -> list[Position]:
        """Fetch open positions, one per symbol."""
        data = await self._get_json(credentials, POSITIONS_PATH)
        if not isinstance(data, list):
            raise BadResponse("Unexpected response from broker: positions is not a list")
        try:
            decoded = [Position.from_api(item) for item in data]
        except (ValueError, AttributeError) as e:
            raise BadResponse(f"Unexpected response from broker: {e}") from e

        by_symbol: dict[str, Position] = {}
        for position in decoded:
            if position.symbol in by_symbol:
                logger.warning(f"Duplicate position for {position.symbol}, keeping the latest")
            by_symbol[position.symbol] = position
        return list(by_symbol.values())

    async def fetch_history(
        self,
        credentials: Credentials,
        range_: Union[RangeSelector, str] = RangeSelector.ONE_DAY,
    ) -> list[EquityPoint]:
        """Fetch the equity curve for a range, dropping placeholder readings."""
        selector = RangeSelector.from_string(range_)
        period, timeframe = selector.query
        data = await self._get_json(credentials, HISTORY_PATH, params={"period": period, "timeframe": timeframe})
        try:
            points = equity_points_from_api(data)
        except ValueError as e:
            raise BadResponse(f"Unexpected response from broker: {e}") from e

        timestamps, equities = data.get("timestamp", []), data.get("equity", [])
        if len(timestamps) != len(equities):
            logger.warning(
                f"History arrays differ in length ({len(timestamps)} timestamps, {len(equities)} equities)"
            )
        logger.debug(f"Fetched {len(points)} history points for {selector.value}")
        return points
