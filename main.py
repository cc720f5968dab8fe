#!/usr/bin/env python3
"""
Beacon - Entry point for running the account sync from a terminal.

Usage:
    python main.py                 # Sync and poll until interrupted
    python main.py --once          # One full refresh, print a summary, exit
    python main.py --range 1M      # Select the history range
    python main.py --chat "..."    # Ask the assistant about recent journal entries
"""

import argparse
import asyncio
import logging

from beacon import Assistant, Broker, Credentials, JournalClient, RangeSelector, SyncOrchestrator
from beacon.assistant import load_trade_context
from beacon.config import settings
from beacon.errors import BeaconError
from beacon.events import Event
from beacon.utils.metrics import chart_domain, portfolio_summary, position_roi

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def print_summary(sync: SyncOrchestrator) -> None:
    """Print the current snapshot in a compact form."""
    summary = portfolio_summary(sync.account, sync.positions)
    print(f"Equity:        ${sync.balance:,.2f} ({summary.daily_change:+.2f}% today)")
    if sync.account:
        print(f"Cash:          ${sync.account.cash:,.2f}")
        print(f"Buying power:  ${sync.account.buying_power:,.2f}")
        print(f"Day trades:    {sync.account.daytrade_count}")
    low, high = chart_domain(sync.history)
    print(f"History {sync.selected_range.value}:   {sync.percent_change:+.2f}% over {len(sync.history)} points")
    print(f"Chart range:   {low:,.2f} .. {high:,.2f}")

    print(f"\nPositions ({summary.position_count}, ROI {summary.roi:+.2f}%):")
    for position in sync.positions:
        print(
            f"  {position.symbol:<8} {position.qty:>10.1f} ${position.market_value:>12,.2f} "
            f"{position.unrealized_pl:+.2f} ({position_roi(position):.2f}%)"
        )

    print("\nRecent activity:")
    if sync.trades_status:
        print(f"  {sync.trades_status}")
    for trade in sync.trades[:10]:
        side = getattr(trade.side, "value", trade.side)
        print(f"  {trade.filled_at:%Y-%m-%d} {side.upper():<4} {trade.symbol:<8} {trade.qty:.2f} @ {trade.price:.2f}")


def log_event(event: Event) -> None:
    logger.info(f"{event.type()}: {event}")


async def run_sync(args) -> None:
    """Run the orchestrator until interrupted (or once with --once)."""
    if not settings.has_broker_credentials:
        logger.error("BROKER_API_KEY and BROKER_API_SECRET must be set")
        return

    sync = SyncOrchestrator(Broker(), default_range=args.range)
    unsubscribe = sync.subscribe(log_event)
    try:
        await sync.set_credentials(Credentials(settings.broker_api_key, settings.broker_api_secret))
        if args.once:
            sync.stop_polling()
            print_summary(sync)
            return
        while True:
            await asyncio.sleep(settings.poll_interval_seconds)
            print_summary(sync)
    finally:
        unsubscribe()
        await sync.close()


async def run_chat(question: str) -> None:
    """Ask the assistant one question using the latest journal entries as context."""
    if not settings.has_journal:
        logger.error("JOURNAL_URL and JOURNAL_KEY must be set")
        return

    async with JournalClient() as journal, Assistant() as assistant:
        context = await load_trade_context(journal)
        try:
            notes = await journal.fetch_notes()
        except BeaconError as e:
            logger.warning(f"Strategy notes unavailable: {e}")
            notes = None
        try:
            reply = await assistant.chat(question, context, current_notes=notes)
        except BeaconError as e:
            logger.error(f"Chat failed: {e}")
            return

    print(reply.reply)
    if reply.proposes_notes:
        print("\nProposed strategy notes:\n")
        print(reply.proposed_notes)


def main():
    parser = argparse.ArgumentParser(description="Beacon brokerage account sync")
    parser.add_argument("--once", action="store_true", help="Refresh once, print a summary and exit")
    parser.add_argument(
        "--range",
        default=settings.default_range,
        choices=[r.value for r in RangeSelector],
        help="Equity history range",
    )
    parser.add_argument("--chat", metavar="QUESTION", help="Ask the assistant about recent trades")
    args = parser.parse_args()

    try:
        if args.chat:
            asyncio.run(run_chat(args.chat))
        else:
            asyncio.run(run_sync(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
