"""Change notifications published by the sync orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class Event(Protocol):
    """Protocol for all events."""

    def type(self) -> str:
        """Return event type identifier."""
        ...


@dataclass
class TradesUpdatedEvent:
    """Emitted when the trade list has been replaced."""

    trade_count: int
    occurred_at: datetime = field(default_factory=datetime.now)

    def type(self) -> str:
        return "TRADES_UPDATED"


@dataclass
class TradesFailedEvent:
    """Emitted when a trades fetch failed and the list was cleared."""

    message: str
    occurred_at: datetime = field(default_factory=datetime.now)

    def type(self) -> str:
        return "TRADES_FAILED"


@dataclass
class AccountUpdatedEvent:
    """Emitted when the account snapshot has been replaced."""

    equity: float
    occurred_at: datetime = field(default_factory=datetime.now)

    def type(self) -> str:
        return "ACCOUNT_UPDATED"


@dataclass
class PositionsUpdatedEvent:
    """Emitted when the position list has been replaced."""

    position_count: int
    occurred_at: datetime = field(default_factory=datetime.now)

    def type(self) -> str:
        return "POSITIONS_UPDATED"


@dataclass
class HistoryUpdatedEvent:
    """Emitted when the equity curve has been replaced."""

    range: str
    point_count: int
    percent_change: float
    occurred_at: datetime = field(default_factory=datetime.now)

    def type(self) -> str:
        return "HISTORY_UPDATED"


Listener = Callable[[Event], None]
