"""
Data models for Solana wallet overlap tracking.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Set


@dataclass
class TokenInfo:
    """Information about a Solana token."""
    token: str
    name: str
    symbol: str
    total_supply: float
    decimals: int
    image: Optional[str] = None
    creation_time: Optional[datetime] = None
    holder_count: Optional[int] = None


@dataclass
class Holder:
    """A single entry of a token's holder list."""
    wallet: str
    amount: float
    percentage: Optional[float] = None


@dataclass
class Trade:
    """Individual wallet trade."""
    token: Optional[str]
    time: Optional[datetime]
    type: str  # 'buy', 'sell' or whatever the API reported
    pnl: float = 0.0


@dataclass
class PnLReport:
    """Usable data from the PnL endpoint."""
    total_realized_pnl: float
    total_unrealized_pnl: float
    positions: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class TopTraderMatch:
    """A wallet's entry in one token's top-trader list."""
    token: str
    pnl: float
    roi: float
    trades: int


@dataclass
class TraderRecord:
    """Top-trader entry as returned for a single token."""
    wallet: str
    pnl: float
    roi: float
    trades: int
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FirstBuyer:
    """Early buyer of a token."""
    wallet: str
    first_buy_time: Optional[datetime]
    total: float
    total_invested: float
    realized: float = 0.0
    unrealized: float = 0.0
    holding: float = 0.0
    buy_transactions: int = 0
    sell_transactions: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WalletSummary:
    """Portfolio and performance figures for one wallet."""
    portfolio_value_usd: float = 0.0
    total_trades: int = 0
    win_rate: int = 0  # percent, 0-100
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    profitable_positions: int = 0
    losing_positions: int = 0


@dataclass
class WalletOverlap:
    """A wallet holding two or more of the analyzed tokens."""
    address: str
    tokens: List[str]
    percentages: Dict[str, float]
    portfolio_value: Optional[float] = None
    score: Optional[int] = None
    tags: Optional[List[str]] = None
    is_top_trader: bool = False
    top_trader_matches: List[TopTraderMatch] = field(default_factory=list)
    wallet_summary: Optional[WalletSummary] = None
    max_holding_hours: Optional[float] = None
    # Profile sources ('basic', 'trades', 'pnl') that could not be fetched
    unavailable: Set[str] = field(default_factory=set)

    @property
    def analyzed(self) -> bool:
        return self.score is not None


@dataclass
class AnalysisResult:
    """Complete overlap analysis over a set of tokens."""
    overlaps: List[WalletOverlap]
    processed_tokens: List[TokenInfo]
    token_map: Dict[str, TokenInfo]
    timestamp: datetime
    skipped_tokens: Dict[str, str] = field(default_factory=dict)

    def overlaps_for_token(self, token: str) -> List[WalletOverlap]:
        return [o for o in self.overlaps if token in o.tokens]


@dataclass
class RecurringWallet:
    """Wallet appearing in the early-buyer or top-trader list of several tokens."""
    address: str
    type: str  # 'early_buyer' or 'top_trader'
    occurrences: int
    tokens: List[str]
    total_pnl: float
    avg_roi: float
    win_rate: int
    data_points: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RecurringScanResult:
    """Both recurrence lists produced by one scan."""
    early_buyers: List[RecurringWallet]
    top_traders: List[RecurringWallet]
    timestamp: datetime
