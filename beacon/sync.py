"""
Sync orchestrator - owns credentials and the published account state.

Usage:
    sync = SyncOrchestrator(Broker())
    unsubscribe = sync.subscribe(lambda event: print(event.type()))

    await sync.set_credentials(Credentials(key, secret))  # initial fetch + polling
    await sync.select_range(RangeSelector.ONE_MONTH)
    await sync.refresh_all()                             # pull-to-refresh
    await sync.close()

Every state field is written only by this class, and each write replaces
the whole collection. The polling job and refresh_all() may overlap; the
later completion for an entity wins.
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from beacon.broker import Broker
from beacon.config import settings
from beacon.errors import BadResponse
from beacon.events import (
    AccountUpdatedEvent,
    Event,
    HistoryUpdatedEvent,
    Listener,
    PositionsUpdatedEvent,
    TradesFailedEvent,
    TradesUpdatedEvent,
)
from beacon.models import AccountSnapshot, Credentials, EquityPoint, Position, RangeSelector, Trade
from beacon.utils.metrics import percent_change

logger = logging.getLogger(__name__)

POLL_JOB_ID = "sync:poll"

NO_TRADES_MESSAGE = "No trades found."


class SyncOrchestrator:
    """Fetches account data on a timer and on demand, and publishes the results."""

    def __init__(
        self,
        broker: Broker,
        poll_interval: Optional[float] = None,
        default_range: Union[RangeSelector, str, None] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            broker: Broker client used for every fetch
            poll_interval: Seconds between timer refreshes (default from settings)
            default_range: Initially selected history range
        """
        self._broker = broker
        self._poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self._credentials: Optional[Credentials] = None
        self._listeners: list[Listener] = []
        self._scheduler: Optional[AsyncIOScheduler] = None

        # Published state
        self._trades: list[Trade] = []
        self._account: Optional[AccountSnapshot] = None
        self._positions: list[Position] = []
        self._history: list[EquityPoint] = []
        self._percent_change = 0.0
        self._selected_range = RangeSelector.from_string(default_range or settings.default_range)
        self._trades_status: Optional[str] = None
        self._loading_trades = False
        self._loading_history = False

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def authenticated(self) -> bool:
        return self._credentials is not None

    @property
    def polling(self) -> bool:
        return self._scheduler is not None and self._scheduler.get_job(POLL_JOB_ID) is not None

    @property
    def trades(self) -> list[Trade]:
        return list(self._trades)

    @property
    def account(self) -> Optional[AccountSnapshot]:
        return self._account

    @property
    def positions(self) -> list[Position]:
        return list(self._positions)

    @property
    def history(self) -> list[EquityPoint]:
        return list(self._history)

    @property
    def percent_change(self) -> float:
        return self._percent_change

    @property
    def selected_range(self) -> RangeSelector:
        return self._selected_range

    @property
    def trades_status(self) -> Optional[str]:
        """User-visible status for the trades list, or None when it loaded fine."""
        return self._trades_status

    @property
    def loading_trades(self) -> bool:
        return self._loading_trades

    @property
    def loading_history(self) -> bool:
        return self._loading_history

    @property
    def balance(self) -> float:
        return self._account.equity if self._account else 0.0

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener failed on {event.type()}: {e}")

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def set_credentials(self, credentials: Credentials) -> None:
        """Store credentials, restart polling and run the initial fetch.

        Calling again with new credentials rotates them; the old timer is
        cancelled before a new one is scheduled.
        """
        rotating = self._credentials is not None
        self._credentials = credentials
        logger.info("Rotating broker credentials" if rotating else "Broker credentials set")
        self.start_polling()
        await self.refresh_all(silent=False)

    def start_polling(self) -> None:
        """Schedule the recurring refresh of trades, account and positions.

        History is not polled; it refreshes on range change or refresh_all().
        """
        if self._credentials is None:
            logger.debug("start_polling: no credentials, not polling")
            return

        self.stop_polling()
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                jobstores={"default": MemoryJobStore()},
                executors={"default": AsyncIOExecutor()},
                job_defaults={
                    "coalesce": True,  # If multiple runs are missed, only run once
                    "max_instances": 1,  # Never stack timer ticks
                    "misfire_grace_time": max(1, int(self._poll_interval)),
                },
            )
            self._scheduler.start()

        self._scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(seconds=self._poll_interval),
            id=POLL_JOB_ID,
            name="Refresh trades, account and positions",
            replace_existing=True,
        )
        logger.info(f"Polling every {self._poll_interval:g}s")

    def stop_polling(self) -> None:
        """Cancel the recurring refresh. Safe to call when not polling."""
        if self._scheduler is not None and self._scheduler.get_job(POLL_JOB_ID) is not None:
            self._scheduler.remove_job(POLL_JOB_ID)
            logger.info("Polling stopped")

    async def close(self) -> None:
        """End the session: stop the scheduler and close the broker."""
        self.stop_polling()
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        await self._broker.close()

    async def _poll(self) -> None:
        logger.debug("Refreshing data...")
        await self._gather(
            self.load_trades(silent=True),
            self.load_account(),
            self.load_positions(),
        )

    async def _gather(self, *tasks) -> None:
        # One failed fetch never cancels its siblings.
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Refresh task failed: {result}")

    async def refresh_all(self, silent: bool = True) -> None:
        """Fetch all four entity classes concurrently and wait for every one.

        Args:
            silent: Leave ``loading_trades`` untouched while trades load
        """
        if self._credentials is None:
            return
        logger.info("Refreshing all account data")
        await self._gather(
            self.load_trades(silent=silent),
            self.load_account(),
            self.load_positions(),
            self.load_history(self._selected_range),
        )

    async def select_range(self, range_: Union[RangeSelector, str]) -> None:
        """Select a history range and fetch the matching equity curve."""
        self._selected_range = RangeSelector.from_string(range_)
        await self.load_history(self._selected_range)

    # -------------------------------------------------------------------------
    # Per-entity fetch and apply
    # -------------------------------------------------------------------------

    async def load_trades(self, silent: bool = False) -> None:
        """Fetch fills. On failure the list is cleared and a status is shown."""
        credentials = self._credentials
        if credentials is None:
            return
        if not silent:
            self._loading_trades = True
        try:
            trades = await self._broker.fetch_trades(credentials)
        except BadResponse as e:
            logger.warning(f"Failed to load trades: {e}")
            self._trades = []
            self._trades_status = f"Failed to load trades: {e}"
            self._emit(TradesFailedEvent(message=self._trades_status))
        else:
            self._trades = trades
            self._trades_status = NO_TRADES_MESSAGE if not trades else None
            self._emit(TradesUpdatedEvent(trade_count=len(trades)))
        finally:
            if not silent:
                self._loading_trades = False

    async def load_account(self) -> None:
        """Fetch the account snapshot, keeping the previous one on failure."""
        credentials = self._credentials
        if credentials is None:
            return
        try:
            account = await self._broker.fetch_account(credentials)
        except BadResponse as e:
            logger.warning(f"Error fetching account: {e}")
            return
        self._account = account
        self._emit(AccountUpdatedEvent(equity=account.equity))

    async def load_positions(self) -> None:
        """Fetch positions, keeping the previous list on failure."""
        credentials = self._credentials
        if credentials is None:
            return
        try:
            positions = await self._broker.fetch_positions(credentials)
        except BadResponse as e:
            logger.warning(f"Error fetching positions: {e}")
            return
        self._positions = positions
        self._emit(PositionsUpdatedEvent(position_count=len(positions)))

    async def load_history(self, range_: Union[RangeSelector, str, None] = None) -> None:
        """Fetch the equity curve, keeping the previous one on failure."""
        credentials = self._credentials
        if credentials is None:
            return
        selector = RangeSelector.from_string(range_ or self._selected_range)
        self._loading_history = True
        try:
            points = await self._broker.fetch_history(credentials, selector)
        except BadResponse as e:
            logger.warning(f"Error loading history for {selector.value}: {e}")
            return
        finally:
            self._loading_history = False
        self._history = points
        self._percent_change = percent_change(points)
        self._emit(
            HistoryUpdatedEvent(range=selector.value, point_count=len(points), percent_change=self._percent_change)
        )
