"""Pytest configuration and fixtures."""

import json

import httpx
import pytest
import pytest_asyncio

from beacon.broker import Broker
from beacon.models import Credentials

BROKER_URL = "https://paper-api.test"


@pytest.fixture
def credentials():
    return Credentials(api_key="PKTEST123", api_secret="secret456")


@pytest.fixture
def account_payload():
    """Account object as the broker sends it: mostly numeric strings."""
    return {
        "equity": "105.00",
        "cash": "40.5",
        "buying_power": "81",
        "last_equity": "100",
        "regt_buying_power": "81",
        "daytrading_buying_power": 0,
        "effective_buying_power": "81",
        "non_marginable_buying_power": "40.5",
        "initial_margin": "32.25",
        "maintenance_margin": "19.35",
        "accrued_fees": "0",
        "daytrade_count": 2,
        "long_market_value": "64.5",
        "short_market_value": "0",
        "position_market_value": "64.5",
    }


@pytest.fixture
def trades_payload():
    return [
        {
            "id": "20240102150405123::abc",
            "activity_type": "FILL",
            "symbol": "AAPL",
            "side": "buy",
            "qty": "10",
            "price": "185.64",
            "transaction_time": "2024-01-02T15:04:05.123456789Z",
        },
        {
            "id": "20240103093000000::def",
            "activity_type": "FILL",
            "symbol": "TSLA",
            "side": "sell",
            "qty": 2.5,
            "price": 240.1,
            "transaction_time": "2024-01-03T09:30:00.5Z",
        },
    ]


@pytest.fixture
def positions_payload():
    return [
        {"symbol": "AAPL", "qty": "10", "market_value": "1100", "current_price": "110", "unrealized_pl": "100"},
        {"symbol": "MSFT", "qty": 3, "market_value": 1200.0, "current_price": 400.0, "unrealized_pl": -60.0},
    ]


@pytest.fixture
def history_payload():
    return {
        "timestamp": [1704186000, 1704186300, 1704186600, 1704186900],
        "equity": [0.0, 0.005, 50.0, 60.0],
        "profit_loss": [0, 0, 0, 10],
        "base_value": 50.0,
        "timeframe": "5Min",
    }


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"content-type": "application/json"})


@pytest.fixture
def routes():
    """Path -> response (or callable(request) -> response) table for the mock broker."""
    return {}


@pytest.fixture
def requests_seen():
    return []


@pytest_asyncio.fixture
async def broker(routes, requests_seen):
    """Broker backed by an httpx.MockTransport serving the routes table."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        # fresh copy so the same route can serve repeated polls
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BROKER_URL)
    yield Broker(base_url=BROKER_URL, client=client)
    await client.aclose()


@pytest.fixture
def respond():
    """Build a JSON httpx.Response: respond(payload, status_code=200)."""
    return json_response
