"""
Threat scoring and behavioural tagging for overlapping wallets.

Score formula (integer, clamped to 0-10):

    +2 per overlapping token, capped at 8
    +2 portfolio value above $5,000
    +3 wallet is in the top-trader list of any analyzed token
    +2 bought an overlapping token within 10 minutes of its creation
    +2 longest holding across overlapping tokens is over 1 hour

Whale status ($20,000+) is a tag only; it adds nothing on top of the
$5,000 portfolio bonus.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Dict, Optional, Sequence

from .models import TokenInfo, Trade, PnLReport, WalletSummary
from .parsers import position_pnl
from .utils import round_percent

MAX_SCORE = 10
MIN_SCORE = 0

POINTS_PER_TOKEN = 2
OVERLAP_POINTS_CAP = 8
PORTFOLIO_BONUS_THRESHOLD = 5_000
PORTFOLIO_BONUS = 2
TOP_TRADER_BONUS = 3
SNIPER_BONUS = 2
HOLDING_BONUS = 2

WHALE_THRESHOLD = 20_000
SNIPER_WINDOW = timedelta(minutes=10)
FLIP_WINDOW = timedelta(minutes=30)
HOLDING_BONUS_DURATION = timedelta(hours=1)
DIAMOND_HAND_DURATION = timedelta(hours=24)

TAG_WHALE = "Whale"
TAG_EARLY_SNIPER = "Early Sniper"
TAG_DIAMOND_HAND = "Diamond Hand"
TAG_QUICK_FLIPPER = "Quick Flipper"
TAG_TOP_TRADER = "Top Trader"
TAG_CASUAL_TRADER = "Casual Trader"


@dataclass
class TradePatterns:
    """Behaviour derived from a wallet's trades in the overlapping tokens."""
    early_sniper: bool = False
    quick_flipper: bool = False
    diamond_hand: bool = False
    max_holding: timedelta = timedelta(0)

    @property
    def max_holding_hours(self) -> float:
        return self.max_holding.total_seconds() / 3600.0


def trades_for_token(trades: Sequence[Trade], token: str) -> List[Trade]:
    """Timed trades in ``token``, oldest first."""
    matching = [t for t in trades if t.token == token and t.time is not None]
    matching.sort(key=lambda t: t.time)
    return matching


def analyze_trade_patterns(tokens: Sequence[str], token_map: Dict[str, TokenInfo],
                           trades: Sequence[Trade], now: datetime) -> TradePatterns:
    """
    Look at each overlapping token the wallet traded.

    Holding duration runs from the first trade in a token until ``now``.
    """
    patterns = TradePatterns()

    for token in tokens:
        info = token_map.get(token)
        if info is None:
            continue

        token_trades = trades_for_token(trades, token)
        if not token_trades:
            continue

        first_time = token_trades[0].time

        if info.creation_time is not None:
            since_creation = first_time - info.creation_time
            if timedelta(0) < since_creation < SNIPER_WINDOW:
                patterns.early_sniper = True

        for trade in token_trades:
            if trade.type == "sell" and trade.time - first_time < FLIP_WINDOW:
                patterns.quick_flipper = True
                break

        held = now - first_time
        if held > patterns.max_holding:
            patterns.max_holding = held
        if held > DIAMOND_HAND_DURATION:
            patterns.diamond_hand = True

    return patterns


def summarize_wallet(portfolio_value: float, trades: Sequence[Trade],
                     pnl: Optional[PnLReport]) -> WalletSummary:
    """
    Build the wallet summary.

    PnL endpoint data wins when usable: totals come from it and the win rate
    counts positions whose realized + unrealized PnL is positive. Otherwise
    realized PnL and win rate are derived from the signs of per-trade PnL.
    """
    summary = WalletSummary(portfolio_value_usd=portfolio_value,
                            total_trades=len(trades))

    if pnl is not None:
        profitable = 0
        losing = 0
        for position in pnl.positions:
            value = position_pnl(position)
            if value > 0:
                profitable += 1
            elif value < 0:
                losing += 1
        summary.realized_pnl = pnl.total_realized_pnl
        summary.unrealized_pnl = pnl.total_unrealized_pnl
        summary.profitable_positions = profitable
        summary.losing_positions = losing
        summary.win_rate = round_percent(profitable, profitable + losing)
    elif trades:
        profitable = sum(1 for t in trades if t.pnl > 0)
        summary.realized_pnl = sum(t.pnl for t in trades)
        summary.profitable_positions = profitable
        summary.losing_positions = len(trades) - profitable
        summary.win_rate = round_percent(profitable, len(trades))

    return summary


def score_wallet(overlap_count: int, portfolio_value: float, is_top_trader: bool,
                 patterns: TradePatterns) -> int:
    score = min(overlap_count * POINTS_PER_TOKEN, OVERLAP_POINTS_CAP)
    if portfolio_value > PORTFOLIO_BONUS_THRESHOLD:
        score += PORTFOLIO_BONUS
    if is_top_trader:
        score += TOP_TRADER_BONUS
    if patterns.early_sniper:
        score += SNIPER_BONUS
    if patterns.max_holding > HOLDING_BONUS_DURATION:
        score += HOLDING_BONUS
    return max(MIN_SCORE, min(score, MAX_SCORE))


def derive_tags(portfolio_value: float, is_top_trader: bool,
                patterns: TradePatterns) -> List[str]:
    tags = []
    if is_top_trader:
        tags.append(TAG_TOP_TRADER)
    if portfolio_value > WHALE_THRESHOLD:
        tags.append(TAG_WHALE)
    if patterns.early_sniper:
        tags.append(TAG_EARLY_SNIPER)
    if patterns.diamond_hand:
        tags.append(TAG_DIAMOND_HAND)
    if patterns.quick_flipper:
        tags.append(TAG_QUICK_FLIPPER)
    if not tags:
        tags.append(TAG_CASUAL_TRADER)
    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(tags))
