"""
Beacon - Brokerage account sync and normalization.

Usage:
    from beacon import Broker, Credentials, RangeSelector, SyncOrchestrator

    sync = SyncOrchestrator(Broker())
    await sync.set_credentials(Credentials(api_key, api_secret))
    await sync.select_range(RangeSelector.ONE_MONTH)
    print(sync.account.equity, sync.percent_change)
    await sync.close()
"""

from beacon.assistant import Assistant, AssistantReply, build_prompt, build_trade_context, parse_reply
from beacon.broker import Broker
from beacon.errors import AssistantError, BackendError, BadResponse, BeaconError, Unauthenticated
from beacon.journal import BotLog, JournalClient, TradeLog
from beacon.models import AccountSnapshot, Credentials, EquityPoint, Position, RangeSelector, Trade, TradeSide
from beacon.sync import SyncOrchestrator

__all__ = [
    # Broker data
    "Broker",
    "Credentials",
    "Trade",
    "TradeSide",
    "AccountSnapshot",
    "Position",
    "EquityPoint",
    "RangeSelector",
    # Sync
    "SyncOrchestrator",
    # Journal
    "JournalClient",
    "TradeLog",
    "BotLog",
    # Assistant
    "Assistant",
    "AssistantReply",
    "build_prompt",
    "build_trade_context",
    "parse_reply",
    # Errors
    "BeaconError",
    "Unauthenticated",
    "BadResponse",
    "BackendError",
    "AssistantError",
]
