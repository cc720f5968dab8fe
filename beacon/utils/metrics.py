"""
Metrics - Derived figures shown next to the raw snapshot data.

Usage:
    change = percent_change(history)
    roi = position_roi(position)
    low, high = chart_domain(history)
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from beacon.models import AccountSnapshot, EquityPoint, Position

# Vertical padding around the equity curve, as a fraction of its range
CHART_PADDING = 0.05


def percent_change(points: Sequence[EquityPoint]) -> float:
    """Percent change from the first to the last point of a history window.

    Returns 0.0 for an empty window or when the first equity is zero.
    """
    if not points:
        return 0.0
    first = points[0].equity
    last = points[-1].equity
    if first == 0:
        return 0.0
    return 100.0 * (last - first) / first


def daily_change(account: Optional[AccountSnapshot]) -> float:
    """Percent change of equity against the previous close."""
    if account is None or account.last_equity == 0:
        return 0.0
    return 100.0 * (account.equity - account.last_equity) / account.last_equity


def cost_basis(position: Position) -> float:
    return position.market_value - position.unrealized_pl


def position_roi(position: Position) -> float:
    """Unrealized return on the position's cost basis, in percent."""
    basis = cost_basis(position)
    if basis == 0:
        return 0.0
    return 100.0 * position.unrealized_pl / basis


def chart_domain(points: Sequence[EquityPoint]) -> tuple[float, float]:
    """Y-axis bounds for the equity chart.

    Pads the min/max by 5% of the range. Falls back to (0, 1) when there is
    no range to pad, so the chart never collapses to zero height.
    """
    if not points:
        return (0.0, 1.0)
    values = [p.equity for p in points]
    low = min(values)
    high = max(values)
    if low == high:
        return (0.0, 1.0)
    padding = (high - low) * CHART_PADDING
    return (low - padding, high + padding)


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregate figures across all open positions."""

    position_count: int
    market_value: float
    unrealized_pl: float
    roi: float
    daily_change: float


def portfolio_summary(account: Optional[AccountSnapshot], positions: Sequence[Position]) -> PortfolioSummary:
    """Sum market value and unrealized P/L across positions.

    ROI is computed on the combined cost basis, so large positions weigh
    more than small ones.
    """
    market_value = sum(p.market_value for p in positions)
    unrealized = sum(p.unrealized_pl for p in positions)
    basis = market_value - unrealized
    return PortfolioSummary(
        position_count=len(positions),
        market_value=market_value,
        unrealized_pl=unrealized,
        roi=100.0 * unrealized / basis if basis != 0 else 0.0,
        daily_change=daily_change(account),
    )
