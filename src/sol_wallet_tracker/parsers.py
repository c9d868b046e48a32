"""
Response parsers for the SolanaTracker API.

The API is inconsistent about envelopes and field names, so every response
kind is read through an explicit, ordered list of extraction rules. Rules are
tried first to last and the first one that yields a value wins; when none
match the parser falls back to an empty/zero value instead of raising.
"""

from typing import List, Dict, Any, Optional, Sequence
import logging

from .models import (TokenInfo, Holder, Trade, PnLReport, TraderRecord,
                     FirstBuyer)
from .utils import normalize_address, to_float, to_int, parse_timestamp

logger = logging.getLogger(__name__)

# List envelopes, checked after "payload is a bare array"
HOLDER_ENVELOPES = ("accounts", "holders")
TRADE_ENVELOPES = ("trades",)
TRADER_ENVELOPES = ("traders",)
FIRST_BUYER_ENVELOPES: Sequence[str] = ()

# Wallet identity fields
HOLDER_IDENTITY_PATHS = ("owner", "address", "wallet")
TRADER_IDENTITY_PATHS = ("wallet", "owner", "address")

# Token metadata: nested "token" object first, then flat fields
TOKEN_NAME_PATHS = ("token.name", "name")
TOKEN_SYMBOL_PATHS = ("token.symbol", "symbol")
TOKEN_IMAGE_PATHS = ("token.image", "image")
TOKEN_SUPPLY_PATHS = ("totalSupply", "token.supply",
                      "token.totalSupply", "supply")
TOKEN_DECIMALS_PATHS = ("decimals", "token.decimals")
TOKEN_CREATED_PATHS = ("token.createdAt", "createdAt", "token.created_at",
                       "created_at", "token.creationTime", "creationTime",
                       "token.creation.created_time", "creation.created_time")

HOLDER_AMOUNT_PATHS = ("amount", "balance")

TRADE_TOKEN_PATHS = ("token", "token.mint", "token.address", "mint")
TRADE_TIME_PATHS = ("time", "timestamp", "blockTime")
TRADE_TYPE_PATHS = ("type", "side")

PORTFOLIO_VALUE_PATHS = ("total", "totalValue", "value")

PNL_REALIZED_PATHS = ("totalRealizedPnl", "summary.realized", "realized")
PNL_UNREALIZED_PATHS = ("totalUnrealizedPnl", "summary.unrealized",
                        "unrealized")
PNL_POSITION_PATHS = ("positions", "tokens")
POSITION_REALIZED_PATHS = ("realizedPnl", "realized")
POSITION_UNREALIZED_PATHS = ("unrealizedPnl", "unrealized")

TRADER_PNL_PATHS = ("pnl", "total")
TRADER_TRADES_PATHS = ("total_trades", "trades")


def dig(record: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts, None when it breaks."""
    current = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def first_value(record: Any, paths: Sequence[str]) -> Any:
    """Value of the first path that is present and not null/empty."""
    for path in paths:
        value = dig(record, path)
        if value is not None and value != "":
            return value
    return None


def first_str(record: Any, paths: Sequence[str]) -> Optional[str]:
    """Like first_value, but only string values count as a match."""
    for path in paths:
        value = normalize_address(dig(record, path))
        if value:
            return value
    return None


def extract_list(payload: Any, envelopes: Sequence[str]) -> List[Dict[str, Any]]:
    """Pull a record list out of a bare array or one of the named envelopes."""
    records: List[Any] = []
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        for key in envelopes:
            value = payload.get(key)
            if isinstance(value, list):
                records = value
                break
    return [r for r in records if isinstance(r, dict)]


def parse_token_info(address: str, payload: Any) -> TokenInfo:
    """Parse token metadata, nested under "token" or flat."""
    name = first_str(payload, TOKEN_NAME_PATHS)
    symbol = first_str(payload, TOKEN_SYMBOL_PATHS)

    return TokenInfo(
        token=address,
        name=name or "Unknown",
        symbol=symbol or address[:4],
        total_supply=to_float(first_value(payload, TOKEN_SUPPLY_PATHS)),
        decimals=to_int(first_value(payload, TOKEN_DECIMALS_PATHS)),
        image=first_str(payload, TOKEN_IMAGE_PATHS),
        creation_time=parse_timestamp(
            first_value(payload, TOKEN_CREATED_PATHS)),
    )


def parse_holders(payload: Any) -> List[Holder]:
    holders = []
    for record in extract_list(payload, HOLDER_ENVELOPES):
        wallet = first_str(record, HOLDER_IDENTITY_PATHS)
        if not wallet:
            continue
        percentage = record.get("percentage")
        holders.append(Holder(
            wallet=wallet,
            amount=to_float(first_value(record, HOLDER_AMOUNT_PATHS)),
            percentage=to_float(percentage) if percentage is not None else None,
        ))
    return holders


def parse_trades(payload: Any) -> List[Trade]:
    trades = []
    for record in extract_list(payload, TRADE_ENVELOPES):
        trade_type = first_str(record, TRADE_TYPE_PATHS) or ""
        trades.append(Trade(
            token=first_str(record, TRADE_TOKEN_PATHS),
            time=parse_timestamp(first_value(record, TRADE_TIME_PATHS)),
            type=trade_type.lower(),
            pnl=to_float(record.get("pnl")),
        ))
    return trades


def parse_portfolio_value(payload: Any) -> float:
    return to_float(first_value(payload, PORTFOLIO_VALUE_PATHS))


def position_pnl(position: Dict[str, Any]) -> float:
    """Realized plus unrealized PnL of one position."""
    return (to_float(first_value(position, POSITION_REALIZED_PATHS))
            + to_float(first_value(position, POSITION_UNREALIZED_PATHS)))


def parse_pnl(payload: Any) -> Optional[PnLReport]:
    """
    Parse the PnL endpoint. Returns None when the payload is unusable
    (null, not an object, or empty) so callers can fall back to trades.
    """
    if not isinstance(payload, dict) or not payload:
        return None

    positions: List[Dict[str, Any]] = []
    raw_positions = first_value(payload, PNL_POSITION_PATHS)
    if isinstance(raw_positions, list):
        positions = [p for p in raw_positions if isinstance(p, dict)]
    elif isinstance(raw_positions, dict):
        # Keyed by token address
        for token, position in raw_positions.items():
            if isinstance(position, dict):
                positions.append({"token": token, **position})

    realized = first_value(payload, PNL_REALIZED_PATHS)
    unrealized = first_value(payload, PNL_UNREALIZED_PATHS)
    if realized is None:
        realized = sum(to_float(first_value(p, POSITION_REALIZED_PATHS))
                       for p in positions)
    if unrealized is None:
        unrealized = sum(to_float(first_value(p, POSITION_UNREALIZED_PATHS))
                         for p in positions)

    return PnLReport(
        total_realized_pnl=to_float(realized),
        total_unrealized_pnl=to_float(unrealized),
        positions=positions,
    )


def parse_top_traders(payload: Any) -> List[TraderRecord]:
    traders = []
    for record in extract_list(payload, TRADER_ENVELOPES):
        wallet = first_str(record, TRADER_IDENTITY_PATHS)
        if not wallet:
            continue
        traders.append(TraderRecord(
            wallet=wallet,
            pnl=to_float(first_value(record, TRADER_PNL_PATHS)),
            roi=to_float(record.get("roi")),
            trades=to_int(first_value(record, TRADER_TRADES_PATHS)),
            raw=record,
        ))
    return traders


def parse_first_buyers(payload: Any) -> List[FirstBuyer]:
    buyers = []
    for record in extract_list(payload, FIRST_BUYER_ENVELOPES):
        wallet = first_str(record, TRADER_IDENTITY_PATHS)
        if not wallet:
            continue
        buyers.append(FirstBuyer(
            wallet=wallet,
            first_buy_time=parse_timestamp(record.get("first_buy_time")),
            total=to_float(record.get("total")),
            total_invested=to_float(record.get("total_invested")),
            realized=to_float(record.get("realized")),
            unrealized=to_float(record.get("unrealized")),
            holding=to_float(record.get("holding")),
            buy_transactions=to_int(record.get("buy_transactions")),
            sell_transactions=to_int(record.get("sell_transactions")),
            raw=record,
        ))
    return buyers
