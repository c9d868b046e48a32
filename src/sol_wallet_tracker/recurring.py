"""
Recurring wallet scan: wallets that show up as early buyers or top traders
of several tokens.
"""

from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Sequence, Callable
import logging

from .analysis import TokenOverlapAnalyzer
from .models import TokenInfo, RecurringWallet, RecurringScanResult
from .parsers import first_value
from .utils import to_float, round_percent

logger = logging.getLogger(__name__)

EARLY_BUYER = "early_buyer"
TOP_TRADER = "top_trader"

ENTRY_PNL_PATHS = ("total", "pnl")


def entry_pnl(entry: Dict[str, Any]) -> float:
    return to_float(first_value(entry, ENTRY_PNL_PATHS))


def entry_roi(entry: Dict[str, Any]) -> float:
    """Reported ROI, else total / total_invested as a percentage."""
    roi = to_float(entry.get("roi"))
    if roi:
        return roi
    invested = to_float(entry.get("total_invested"))
    if invested:
        return to_float(entry.get("total")) / invested * 100.0
    return 0.0


def fold_recurring(entries_by_wallet: Dict[str, List[Dict[str, Any]]],
                   wallet_type: str) -> List[RecurringWallet]:
    """
    Keep wallets seen in at least two distinct tokens.

    Every entry carries the token it came from under "token_address".
    """
    results = []
    for address, entries in entries_by_wallet.items():
        tokens = list(dict.fromkeys(e["token_address"] for e in entries))
        if len(tokens) < 2:
            continue

        total_pnl = 0.0
        total_roi = 0.0
        wins = 0
        for entry in entries:
            pnl = entry_pnl(entry)
            total_pnl += pnl
            total_roi += entry_roi(entry)
            if pnl > 0:
                wins += 1

        results.append(RecurringWallet(
            address=address,
            type=wallet_type,
            occurrences=len(tokens),
            tokens=tokens,
            total_pnl=total_pnl,
            avg_roi=total_roi / len(entries),
            win_rate=round_percent(wins, len(entries)),
            data_points=entries,
        ))

    results.sort(key=lambda r: (r.occurrences, r.total_pnl), reverse=True)
    return results


class RecurringWalletScanner:
    """Runs first-buyer and top-trader lookups across tokens on one client."""

    def __init__(self, analyzer: TokenOverlapAnalyzer):
        self.analyzer = analyzer

    def scan(self, tokens: Sequence[TokenInfo],
             progress: Optional[Callable[[int, int], None]] = None) -> RecurringScanResult:
        if len(tokens) < 2:
            raise ValueError(
                "Please analyze at least 2 tokens to find recurring wallets.")

        total_requests = len(tokens) * 2
        completed = 0
        buyer_map: Dict[str, List[Dict[str, Any]]] = {}
        trader_map: Dict[str, List[Dict[str, Any]]] = {}

        for token in tokens:
            for buyer in self.analyzer.get_first_buyers(token.token):
                buyer_map.setdefault(buyer.wallet, []).append(
                    {**buyer.raw, "token_address": token.token,
                     "token_symbol": token.symbol})
            completed += 1
            if progress:
                progress(completed, total_requests)

            for trader in self.analyzer.get_top_traders(token.token):
                trader_map.setdefault(trader.wallet, []).append(
                    {**trader.raw, "token_address": token.token,
                     "token_symbol": token.symbol})
            completed += 1
            if progress:
                progress(completed, total_requests)

        early_buyers = fold_recurring(buyer_map, EARLY_BUYER)
        top_traders = fold_recurring(trader_map, TOP_TRADER)
        logger.info(
            f"Recurring scan: {len(early_buyers)} early buyers, "
            f"{len(top_traders)} top traders across {len(tokens)} tokens")

        return RecurringScanResult(
            early_buyers=early_buyers,
            top_traders=top_traders,
            timestamp=datetime.fromtimestamp(
                self.analyzer.client.clock.time(), tz=timezone.utc),
        )
