"""
Token overlap analysis: cross-reference holder lists, then profile and score
the wallets that show up in more than one token.
"""

from datetime import datetime, timezone
from typing import List, Dict, Optional, Iterable, Callable
import logging

from .api_clients import SolanaTrackerClient
from .config import Config
from .exceptions import TrackerAPIError
from .models import (TokenInfo, Holder, TopTraderMatch, TraderRecord,
                     FirstBuyer, WalletOverlap, WalletSummary, AnalysisResult)
from .scoring import (analyze_trade_patterns, summarize_wallet, score_wallet,
                      derive_tags)
from .utils import clean_token_list, holding_percentage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class HolderCrossReferencer:
    """Builds the wallet -> tokens index from per-token holder lists."""

    def __init__(self):
        self._tokens: Dict[str, List[str]] = {}
        self._percentages: Dict[str, Dict[str, float]] = {}

    def add_token(self, info: TokenInfo, holders: Iterable[Holder]) -> None:
        for holder in holders:
            wallet = holder.wallet
            tokens = self._tokens.setdefault(wallet, [])
            if info.token in tokens:
                continue

            if holder.percentage is not None:
                percent = holder.percentage
            else:
                percent = holding_percentage(
                    holder.amount, info.decimals, info.total_supply)

            tokens.append(info.token)
            self._percentages.setdefault(wallet, {})[info.token] = percent

    @property
    def wallet_count(self) -> int:
        return len(self._tokens)

    def overlaps(self) -> List[WalletOverlap]:
        """Wallets holding two or more tokens, most tokens first."""
        overlaps = [
            WalletOverlap(address=wallet, tokens=list(tokens),
                          percentages=dict(self._percentages[wallet]))
            for wallet, tokens in self._tokens.items()
            if len(tokens) >= 2
        ]
        overlaps.sort(key=lambda o: len(o.tokens), reverse=True)
        return overlaps


class WalletProfiler:
    """Deep analysis of one overlapping wallet."""

    def __init__(self, client: SolanaTrackerClient):
        self.client = client

    def profile(self, overlap: WalletOverlap, token_map: Dict[str, TokenInfo],
                top_trader_map: Dict[str, List[TopTraderMatch]],
                now: datetime) -> WalletOverlap:
        """
        Fetch portfolio, trades and PnL one after another, then score and tag.

        Each fetch falls back on its own; the failed source is recorded in
        ``overlap.unavailable`` so "no data" can be told apart from "no
        activity".
        """
        wallet = overlap.address

        portfolio_value = 0.0
        try:
            portfolio_value = self.client.get_wallet_basic(wallet)
        except TrackerAPIError as e:
            logger.warning(f"Failed basic info for {wallet}: {e}")
            overlap.unavailable.add("basic")

        trades = []
        try:
            trades = self.client.get_wallet_trades(wallet)
        except TrackerAPIError as e:
            logger.warning(f"Failed trades for {wallet}: {e}")
            overlap.unavailable.add("trades")

        pnl = None
        try:
            pnl = self.client.get_wallet_pnl(wallet)
        except TrackerAPIError as e:
            logger.warning(f"Failed PnL for {wallet}: {e}")
            overlap.unavailable.add("pnl")

        matches = top_trader_map.get(wallet, [])
        is_top_trader = bool(matches)
        patterns = analyze_trade_patterns(overlap.tokens, token_map, trades, now)

        overlap.portfolio_value = portfolio_value
        overlap.wallet_summary = summarize_wallet(portfolio_value, trades, pnl)
        overlap.is_top_trader = is_top_trader
        overlap.top_trader_matches = list(matches)
        overlap.max_holding_hours = patterns.max_holding_hours
        overlap.score = score_wallet(
            len(overlap.tokens), portfolio_value, is_top_trader, patterns)
        overlap.tags = derive_tags(portfolio_value, is_top_trader, patterns)
        return overlap


def rank_overlaps(overlaps: List[WalletOverlap]) -> List[WalletOverlap]:
    """Score descending (unscored wallets count as 0), then token count."""
    return sorted(overlaps,
                  key=lambda o: (o.score or 0, len(o.tokens)),
                  reverse=True)


class TokenOverlapAnalyzer:
    """Runs overlap analysis and the single-token/single-wallet lookups."""

    def __init__(self, client: SolanaTrackerClient, config: Optional[Config] = None):
        self.client = client
        self.config = config or client.config
        self.profiler = WalletProfiler(client)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.client.clock.time(), tz=timezone.utc)

    def analyze_tokens(self, tokens: Iterable[str],
                       progress: Optional[ProgressCallback] = None) -> AnalysisResult:
        """
        Find wallets holding two or more of ``tokens`` and score them.

        A token whose metadata cannot be fetched is skipped and listed in
        ``skipped_tokens``. Holder and top-trader failures only shrink that
        token's contribution.
        """
        token_list = clean_token_list(tokens)
        if not token_list:
            raise ValueError("At least one token address is required")

        processed_tokens: List[TokenInfo] = []
        token_map: Dict[str, TokenInfo] = {}
        skipped: Dict[str, str] = {}
        top_trader_map: Dict[str, List[TopTraderMatch]] = {}
        cross_ref = HolderCrossReferencer()

        logger.info(f"Starting analysis of {len(token_list)} tokens")

        # 1. Metadata, holders and top traders per token
        for index, token in enumerate(token_list, 1):
            if progress:
                progress("tokens", index, len(token_list))

            try:
                info = self.client.get_token_info(token)
            except TrackerAPIError as e:
                logger.error(f"Failed to process {token}: {e}")
                skipped[token] = str(e)
                continue

            try:
                holders = self.client.get_token_holders(token)
            except TrackerAPIError as e:
                logger.warning(f"Error fetching holders for {token}: {e}")
                holders = []
            info.holder_count = len(holders)

            processed_tokens.append(info)
            token_map[token] = info

            for trader in self.get_top_traders(token):
                top_trader_map.setdefault(trader.wallet, []).append(TopTraderMatch(
                    token=token, pnl=trader.pnl, roi=trader.roi, trades=trader.trades))

            cross_ref.add_token(info, holders)

        # 2. Overlaps
        overlaps = cross_ref.overlaps()
        logger.info(
            f"Found {len(overlaps)} overlaps among {cross_ref.wallet_count} wallets")

        # 3. Deep analysis of the top candidates
        limit = min(len(overlaps), max(0, self.config.deep_analysis_limit))
        if len(overlaps) > limit:
            logger.warning(
                f"Limiting deep analysis to top {limit} overlaps out of {len(overlaps)}")

        for index, overlap in enumerate(overlaps[:limit], 1):
            if progress:
                progress("wallets", index, limit)
            self.profiler.profile(overlap, token_map, top_trader_map, self._now())

        return AnalysisResult(
            overlaps=rank_overlaps(overlaps),
            processed_tokens=processed_tokens,
            token_map=token_map,
            timestamp=self._now(),
            skipped_tokens=skipped,
        )

    def get_first_buyers(self, token: str) -> List[FirstBuyer]:
        try:
            return self.client.get_first_buyers(token)
        except TrackerAPIError as e:
            logger.warning(f"Failed to fetch first buyers for {token}: {e}")
            return []

    def get_top_traders(self, token: str) -> List[TraderRecord]:
        try:
            return self.client.get_top_traders(token)
        except TrackerAPIError as e:
            logger.warning(f"Failed to fetch top traders for {token}: {e}")
            return []

    def get_wallet_pnl(self, wallet: str) -> Optional[WalletSummary]:
        """Summary built from the PnL endpoint alone, None when unavailable."""
        try:
            pnl = self.client.get_wallet_pnl(wallet)
        except TrackerAPIError as e:
            logger.warning(f"Failed PnL for {wallet}: {e}")
            return None
        if pnl is None:
            return None
        return summarize_wallet(0.0, [], pnl)
