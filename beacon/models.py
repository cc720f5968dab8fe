"""Domain records decoded from broker API responses."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from beacon.utils.decoding import decode_integer, decode_number, decode_optional_number, decode_timestamp


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Missing or non-string field: {key}")
    return value


@dataclass(frozen=True)
class Credentials:
    """Broker API key/secret pair."""

    api_key: str
    api_secret: str

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.api_key[:4]}...)"


class TradeSide(str, Enum):
    """Trade side enumeration (buy or sell)."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def from_string(cls, value: str) -> "TradeSide":
        """Create TradeSide from string (case-insensitive).

        Raises:
            ValueError: If trade side is not supported
        """
        if not value:
            raise ValueError("Invalid trade side: empty string")
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid trade side: {value}")

    def is_buy(self) -> bool:
        return self == TradeSide.BUY


class RangeSelector(str, Enum):
    """Equity history window, mapped to the broker's (period, timeframe) query."""

    ONE_DAY = "1D"
    ONE_MONTH = "1M"
    ONE_YEAR = "1Y"
    ALL = "ALL"

    @property
    def query(self) -> tuple[str, str]:
        """The (period, timeframe) pair for the history endpoint."""
        return RANGE_QUERIES[self]

    @classmethod
    def from_string(cls, value: Union[str, "RangeSelector"]) -> "RangeSelector":
        if isinstance(value, RangeSelector):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Invalid range: {value}")


RANGE_QUERIES: dict[RangeSelector, tuple[str, str]] = {
    RangeSelector.ONE_DAY: ("1D", "5Min"),
    RangeSelector.ONE_MONTH: ("1M", "1H"),
    RangeSelector.ONE_YEAR: ("1A", "1D"),
    RangeSelector.ALL: ("ALL", "1D"),
}


@dataclass(frozen=True)
class Trade:
    """An executed fill."""

    id: str
    symbol: str
    side: Union[TradeSide, str]
    qty: float
    price: float
    filled_at: datetime

    @classmethod
    def from_api(cls, data: dict, now: Optional[datetime] = None) -> "Trade":
        """Decode a FILL activity record.

        Raises:
            ValueError: If id, symbol, side or transaction_time is missing
        """
        side = _require_str(data, "side")
        try:
            parsed_side: Union[TradeSide, str] = TradeSide.from_string(side)
        except ValueError:
            parsed_side = side
        return cls(
            id=_require_str(data, "id"),
            symbol=_require_str(data, "symbol"),
            side=parsed_side,
            qty=decode_number(data.get("qty")),
            price=decode_number(data.get("price")),
            filled_at=decode_timestamp(_require_str(data, "transaction_time"), now=now),
        )

    @property
    def value(self) -> float:
        return self.qty * self.price


@dataclass(frozen=True)
class AccountSnapshot:
    """Account balances and margin figures."""

    equity: float = 0.0
    cash: float = 0.0
    buying_power: float = 0.0
    last_equity: float = 0.0
    regt_buying_power: float = 0.0
    daytrading_buying_power: float = 0.0
    effective_buying_power: float = 0.0
    non_marginable_buying_power: float = 0.0
    initial_margin: float = 0.0
    maintenance_margin: float = 0.0
    accrued_fees: float = 0.0
    daytrade_count: int = 0
    long_market_value: float = 0.0
    short_market_value: float = 0.0
    position_market_value: float = 0.0

    @classmethod
    def from_api(cls, data: dict) -> "AccountSnapshot":
        """Decode the account object. Every field is optional."""
        long_value = decode_number(data.get("long_market_value"))
        short_value = decode_number(data.get("short_market_value"))
        position_value = decode_optional_number(data.get("position_market_value"))
        if position_value is None:
            position_value = abs(long_value) + abs(short_value)

        return cls(
            equity=decode_number(data.get("equity")),
            cash=decode_number(data.get("cash")),
            buying_power=decode_number(data.get("buying_power")),
            last_equity=decode_number(data.get("last_equity")),
            regt_buying_power=decode_number(data.get("regt_buying_power")),
            daytrading_buying_power=decode_number(data.get("daytrading_buying_power")),
            effective_buying_power=decode_number(data.get("effective_buying_power")),
            non_marginable_buying_power=decode_number(data.get("non_marginable_buying_power")),
            initial_margin=decode_number(data.get("initial_margin")),
            maintenance_margin=decode_number(data.get("maintenance_margin")),
            accrued_fees=decode_number(data.get("accrued_fees")),
            daytrade_count=decode_integer(data.get("daytrade_count")),
            long_market_value=long_value,
            short_market_value=short_value,
            position_market_value=position_value,
        )


@dataclass(frozen=True)
class Position:
    """An open position, keyed by symbol."""

    symbol: str
    qty: float = 0.0
    market_value: float = 0.0
    current_price: float = 0.0
    unrealized_pl: float = 0.0

    @classmethod
    def from_api(cls, data: dict) -> "Position":
        """Decode a position record.

        Raises:
            ValueError: If symbol is missing
        """
        return cls(
            symbol=_require_str(data, "symbol"),
            qty=decode_number(data.get("qty")),
            market_value=decode_number(data.get("market_value")),
            current_price=decode_number(data.get("current_price")),
            unrealized_pl=decode_number(data.get("unrealized_pl")),
        )


# Equity at or below this is a placeholder reading, not a real balance
MIN_VALID_EQUITY = 0.01


@dataclass(frozen=True)
class EquityPoint:
    """One point on the equity curve."""

    timestamp: int
    equity: float

    @property
    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


def equity_points_from_api(data: Any) -> list[EquityPoint]:
    """Zip the parallel timestamp/equity arrays and drop invalid readings.

    Raises:
        ValueError: If the body is not an object with two arrays
    """
    if not isinstance(data, dict):
        raise ValueError("History response is not an object")
    timestamps = data.get("timestamp")
    equities = data.get("equity")
    if not isinstance(timestamps, list) or not isinstance(equities, list):
        raise ValueError("History response is missing timestamp/equity arrays")

    points = []
    for ts, eq in zip(timestamps, equities):
        # null equity appears for periods before the account was funded
        equity = decode_number(eq)
        if equity <= MIN_VALID_EQUITY:
            continue
        points.append(EquityPoint(timestamp=decode_integer(ts), equity=equity))
    return points
