"""Tests for the broker REST client.

These tests verify that:
1. Requests carry both auth headers and the right query parameters
2. Only HTTP 200 with a body of the expected shape succeeds
3. Every other outcome raises BadResponse, never partial data
"""

import httpx
import pytest

from beacon.broker import ACCOUNT_PATH, ACTIVITIES_PATH, HISTORY_PATH, POSITIONS_PATH, Broker
from beacon.errors import BadResponse, Unauthenticated
from beacon.models import EquityPoint, RangeSelector, TradeSide


class TestAuthentication:
    """Tests for request authentication."""

    @pytest.mark.asyncio
    async def test_sends_key_and_secret_headers(self, broker, routes, requests_seen, credentials, respond):
        routes[ACCOUNT_PATH] = respond({"equity": "1"})

        await broker.fetch_account(credentials)

        request = requests_seen[0]
        assert request.method == "GET"
        assert request.headers["APCA-API-KEY-ID"] == "PKTEST123"
        assert request.headers["APCA-API-SECRET-KEY"] == "secret456"

    @pytest.mark.asyncio
    async def test_missing_credentials_raise(self, broker):
        with pytest.raises(Unauthenticated):
            await broker.fetch_account(None)


class TestFetchTrades:
    """Tests for fetch_trades."""

    @pytest.mark.asyncio
    async def test_decodes_fills(self, broker, routes, requests_seen, credentials, respond, trades_payload):
        routes[ACTIVITIES_PATH] = respond(trades_payload)

        trades = await broker.fetch_trades(credentials)

        assert [t.symbol for t in trades] == ["AAPL", "TSLA"]
        assert trades[0].side == TradeSide.BUY
        assert trades[1].qty == 2.5
        assert requests_seen[0].url.params["activity_types"] == "FILL"

    @pytest.mark.asyncio
    async def test_empty_list(self, broker, routes, credentials, respond):
        routes[ACTIVITIES_PATH] = respond([])
        assert await broker.fetch_trades(credentials) == []

    @pytest.mark.asyncio
    async def test_non_200_raises(self, broker, routes, credentials, respond):
        routes[ACTIVITIES_PATH] = respond({"message": "forbidden"}, status_code=403)

        with pytest.raises(BadResponse) as exc_info:
            await broker.fetch_trades(credentials)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_other_2xx_is_still_a_failure(self, broker, routes, credentials, respond):
        routes[ACTIVITIES_PATH] = respond([], status_code=204)
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)

    @pytest.mark.asyncio
    async def test_object_instead_of_array_raises(self, broker, routes, credentials, respond):
        routes[ACTIVITIES_PATH] = respond({"trades": []})
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)

    @pytest.mark.asyncio
    async def test_one_bad_record_rejects_whole_list(self, broker, routes, credentials, respond, trades_payload):
        routes[ACTIVITIES_PATH] = respond(trades_payload + [{"symbol": "NOID", "side": "buy"}])
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)

    @pytest.mark.asyncio
    async def test_fill_without_transaction_time_rejects_list(
        self, broker, routes, credentials, respond, trades_payload
    ):
        undated = dict(trades_payload[1])
        del undated["transaction_time"]
        routes[ACTIVITIES_PATH] = respond([trades_payload[0], undated])
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, broker, routes, credentials):
        routes[ACTIVITIES_PATH] = httpx.Response(200, content=b"<html>oops</html>")
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)

    @pytest.mark.asyncio
    async def test_transport_error_raises_bad_response(self, broker, routes, credentials):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        routes[ACTIVITIES_PATH] = fail
        with pytest.raises(BadResponse):
            await broker.fetch_trades(credentials)


class TestFetchAccount:
    """Tests for fetch_account."""

    @pytest.mark.asyncio
    async def test_decodes_account(self, broker, routes, credentials, respond, account_payload):
        routes[ACCOUNT_PATH] = respond(account_payload)

        account = await broker.fetch_account(credentials)

        assert account.equity == 105.0
        assert account.daytrade_count == 2

    @pytest.mark.asyncio
    async def test_server_error_raises(self, broker, routes, credentials, respond):
        routes[ACCOUNT_PATH] = respond({"message": "internal"}, status_code=500)
        with pytest.raises(BadResponse):
            await broker.fetch_account(credentials)

    @pytest.mark.asyncio
    async def test_array_body_raises(self, broker, routes, credentials, respond):
        routes[ACCOUNT_PATH] = respond([])
        with pytest.raises(BadResponse):
            await broker.fetch_account(credentials)


class TestFetchPositions:
    """Tests for fetch_positions."""

    @pytest.mark.asyncio
    async def test_decodes_positions(self, broker, routes, credentials, respond, positions_payload):
        routes[POSITIONS_PATH] = respond(positions_payload)

        positions = await broker.fetch_positions(credentials)

        assert [p.symbol for p in positions] == ["AAPL", "MSFT"]
        assert positions[1].unrealized_pl == -60.0

    @pytest.mark.asyncio
    async def test_duplicate_symbols_collapse(self, broker, routes, credentials, respond):
        routes[POSITIONS_PATH] = respond(
            [
                {"symbol": "AAPL", "qty": "1"},
                {"symbol": "MSFT", "qty": "2"},
                {"symbol": "AAPL", "qty": "5"},
            ]
        )

        positions = await broker.fetch_positions(credentials)

        assert [p.symbol for p in positions] == ["AAPL", "MSFT"]
        assert positions[0].qty == 5.0


class TestFetchHistory:
    """Tests for fetch_history."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "selector,period,timeframe",
        [
            (RangeSelector.ONE_DAY, "1D", "5Min"),
            (RangeSelector.ONE_MONTH, "1M", "1H"),
            (RangeSelector.ONE_YEAR, "1A", "1D"),
            (RangeSelector.ALL, "ALL", "1D"),
        ],
    )
    async def test_range_query(
        self, broker, routes, requests_seen, credentials, respond, history_payload, selector, period, timeframe
    ):
        routes[HISTORY_PATH] = respond(history_payload)

        await broker.fetch_history(credentials, selector)

        params = requests_seen[0].url.params
        assert params["period"] == period
        assert params["timeframe"] == timeframe

    @pytest.mark.asyncio
    async def test_filters_low_equity(self, broker, routes, credentials, respond, history_payload):
        routes[HISTORY_PATH] = respond(history_payload)

        history = await broker.fetch_history(credentials, "1D")

        assert history == [EquityPoint(1704186600, 50.0), EquityPoint(1704186900, 60.0)]

    @pytest.mark.asyncio
    async def test_missing_arrays_raise(self, broker, routes, credentials, respond):
        routes[HISTORY_PATH] = respond({"equity": [1.0]})
        with pytest.raises(BadResponse):
            await broker.fetch_history(credentials, RangeSelector.ALL)


class TestLifecycle:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        async with Broker(base_url="https://x.test", client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        broker = Broker(base_url="https://x.test")
        await broker.close()
        assert broker._client.is_closed
