from datetime import datetime, timedelta, timezone

import pytest

from sol_wallet_tracker.models import PnLReport, TokenInfo, Trade
from sol_wallet_tracker.scoring import (TAG_CASUAL_TRADER, TAG_DIAMOND_HAND,
                                        TAG_EARLY_SNIPER, TAG_QUICK_FLIPPER,
                                        TAG_TOP_TRADER, TAG_WHALE, TradePatterns,
                                        analyze_trade_patterns, derive_tags,
                                        score_wallet, summarize_wallet)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
BEHAVIOUR_TAGS = {TAG_WHALE, TAG_EARLY_SNIPER, TAG_DIAMOND_HAND,
                  TAG_QUICK_FLIPPER, TAG_TOP_TRADER}


def token(address, created=None):
    return TokenInfo(token=address, name=address, symbol=address,
                     total_supply=1000, decimals=0, creation_time=created)


def trade(address, at, kind="buy", pnl=0.0):
    return Trade(token=address, time=at, type=kind, pnl=pnl)


class TestSummary:
    def test_falls_back_to_trade_pnl(self):
        trades = [trade("A", NOW, pnl=10), trade("A", NOW, pnl=-5), trade("B", NOW, pnl=20)]

        summary = summarize_wallet(100.0, trades, None)

        assert summary.win_rate == 67
        assert summary.realized_pnl == 25.0
        assert summary.profitable_positions == 2
        assert summary.losing_positions == 1
        assert summary.total_trades == 3
        assert summary.portfolio_value_usd == 100.0

    def test_uses_pnl_positions_when_available(self):
        report = PnLReport(total_realized_pnl=500.0, total_unrealized_pnl=50.0, positions=[
            {"realizedPnl": 10, "unrealizedPnl": 5},
            {"realizedPnl": -20, "unrealizedPnl": 5},
            {"realizedPnl": 0, "unrealizedPnl": 0},
            {"realizedPnl": 1},
        ])
        trades = [trade("A", NOW, pnl=-99)]

        summary = summarize_wallet(0.0, trades, report)

        assert summary.realized_pnl == 500.0
        assert summary.unrealized_pnl == 50.0
        assert summary.profitable_positions == 2
        assert summary.losing_positions == 1
        assert summary.win_rate == 67
        assert summary.total_trades == 1

    def test_no_data_defaults_to_zero(self):
        summary = summarize_wallet(0.0, [], None)

        assert summary.win_rate == 0
        assert summary.realized_pnl == 0.0
        assert summary.profitable_positions == 0

    def test_win_rate_rounds_half_up(self):
        trades = [trade("A", NOW, pnl=1)] + [trade("A", NOW, pnl=-1)] * 7
        assert summarize_wallet(0.0, trades, None).win_rate == 13


class TestTradePatterns:
    def test_early_sniper_within_ten_minutes_of_creation(self):
        created = NOW - timedelta(days=2)
        tokens = {"A": token("A", created)}

        patterns = analyze_trade_patterns(
            ["A"], tokens, [trade("A", created + timedelta(minutes=5))], NOW)

        assert patterns.early_sniper

    def test_not_sniper_after_window(self):
        created = NOW - timedelta(days=2)
        tokens = {"A": token("A", created)}

        patterns = analyze_trade_patterns(
            ["A"], tokens, [trade("A", created + timedelta(minutes=11))], NOW)

        assert not patterns.early_sniper

    def test_quick_flipper(self):
        start = NOW - timedelta(hours=3)
        trades = [trade("A", start + timedelta(minutes=20), "sell"), trade("A", start)]

        patterns = analyze_trade_patterns(["A"], {"A": token("A")}, trades, NOW)

        assert patterns.quick_flipper

    def test_slow_sell_is_not_a_flip(self):
        start = NOW - timedelta(hours=3)
        trades = [trade("A", start), trade("A", start + timedelta(minutes=45), "sell")]

        patterns = analyze_trade_patterns(["A"], {"A": token("A")}, trades, NOW)

        assert not patterns.quick_flipper

    def test_holding_duration_and_diamond_hand(self):
        trades = [trade("A", NOW - timedelta(hours=30)), trade("B", NOW - timedelta(hours=2))]
        tokens = {"A": token("A"), "B": token("B")}

        patterns = analyze_trade_patterns(["A", "B"], tokens, trades, NOW)

        assert patterns.diamond_hand
        assert patterns.max_holding_hours == pytest.approx(30.0)

    def test_trades_in_other_tokens_are_ignored(self):
        trades = [trade("Z", NOW - timedelta(days=5))]

        patterns = analyze_trade_patterns(["A", "B"], {"A": token("A"), "B": token("B")},
                                          trades, NOW)

        assert patterns == TradePatterns()


class TestScore:
    def test_base_score_is_capped(self):
        assert score_wallet(2, 0, False, TradePatterns()) == 4
        assert score_wallet(3, 0, False, TradePatterns()) == 6
        assert score_wallet(7, 0, False, TradePatterns()) == 8

    def test_whale_with_top_trader_match(self):
        assert score_wallet(2, 25_000, True, TradePatterns()) == 9

    def test_clamped_to_ten(self):
        patterns = TradePatterns(early_sniper=True, max_holding=timedelta(hours=5))
        assert score_wallet(5, 100_000, True, patterns) == 10

    @pytest.mark.parametrize("count", range(0, 8))
    @pytest.mark.parametrize("value", [0, 6_000, 50_000])
    @pytest.mark.parametrize("top", [False, True])
    def test_score_always_in_range(self, count, value, top):
        patterns = TradePatterns(early_sniper=top, max_holding=timedelta(hours=count))
        assert 0 <= score_wallet(count, value, top, patterns) <= 10


class TestTags:
    def test_casual_trader_fallback(self):
        assert derive_tags(1_000, False, TradePatterns()) == [TAG_CASUAL_TRADER]

    def test_top_trader_only_is_not_casual(self):
        assert derive_tags(0, True, TradePatterns()) == [TAG_TOP_TRADER]

    def test_whale_and_top_trader(self):
        tags = derive_tags(25_000, True, TradePatterns())
        assert set(tags) == {TAG_WHALE, TAG_TOP_TRADER}

    def test_all_behaviours(self):
        patterns = TradePatterns(early_sniper=True, quick_flipper=True, diamond_hand=True)

        tags = derive_tags(30_000, True, patterns)

        assert set(tags) == BEHAVIOUR_TAGS
        assert len(tags) == len(set(tags))
        assert TAG_CASUAL_TRADER not in tags
