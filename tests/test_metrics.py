"""Tests for derived portfolio metrics."""

import pytest

from beacon.models import AccountSnapshot, EquityPoint, Position
from beacon.utils.metrics import (
    chart_domain,
    cost_basis,
    daily_change,
    percent_change,
    portfolio_summary,
    position_roi,
)


def points(*equities):
    return [EquityPoint(timestamp=i, equity=e) for i, e in enumerate(equities)]


class TestPercentChange:
    def test_first_to_last(self):
        assert percent_change(points(100.0, 110.0)) == 10.0

    def test_uses_endpoints_only(self):
        assert percent_change(points(100.0, 500.0, 1.0, 90.0)) == pytest.approx(-10.0)

    def test_single_point(self):
        assert percent_change(points(100.0)) == 0.0

    def test_empty(self):
        assert percent_change([]) == 0.0

    def test_zero_first_equity(self):
        assert percent_change(points(0.0, 50.0)) == 0.0


class TestDailyChange:
    def test_against_last_equity(self):
        assert daily_change(AccountSnapshot(equity=105.0, last_equity=100.0)) == 5.0

    def test_zero_last_equity(self):
        assert daily_change(AccountSnapshot(equity=105.0, last_equity=0.0)) == 0.0

    def test_no_account(self):
        assert daily_change(None) == 0.0


class TestPositionRoi:
    def test_roi_on_cost_basis(self):
        position = Position(symbol="AAPL", market_value=1100.0, unrealized_pl=100.0)
        assert cost_basis(position) == 1000.0
        assert position_roi(position) == 10.0

    def test_loss(self):
        position = Position(symbol="MSFT", market_value=900.0, unrealized_pl=-100.0)
        assert position_roi(position) == -10.0

    def test_zero_cost_basis(self):
        position = Position(symbol="X", market_value=50.0, unrealized_pl=50.0)
        assert position_roi(position) == 0.0


class TestChartDomain:
    def test_pads_five_percent_of_range(self):
        low, high = chart_domain(points(90.0, 100.0, 110.0))
        assert low == pytest.approx(89.0)
        assert high == pytest.approx(111.0)
        assert low < 90.0 and high > 110.0

    def test_flat_series(self):
        assert chart_domain(points(50.0, 50.0)) == (0.0, 1.0)

    def test_empty(self):
        assert chart_domain([]) == (0.0, 1.0)


class TestPortfolioSummary:
    def test_aggregates_positions(self):
        positions = [
            Position(symbol="AAPL", market_value=1100.0, unrealized_pl=100.0),
            Position(symbol="MSFT", market_value=900.0, unrealized_pl=-100.0),
        ]
        summary = portfolio_summary(AccountSnapshot(equity=105.0, last_equity=100.0), positions)
        assert summary.position_count == 2
        assert summary.market_value == 2000.0
        assert summary.unrealized_pl == 0.0
        assert summary.roi == 0.0
        assert summary.daily_change == 5.0

    def test_empty(self):
        summary = portfolio_summary(None, [])
        assert summary.position_count == 0
        assert summary.roi == 0.0
