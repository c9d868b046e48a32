from datetime import datetime, timezone

import pytest

from sol_wallet_tracker.parsers import (extract_list, parse_first_buyers,
                                        parse_holders, parse_pnl,
                                        parse_portfolio_value, parse_token_info,
                                        parse_top_traders, parse_trades,
                                        position_pnl)
from sol_wallet_tracker.utils import parse_timestamp


@pytest.mark.parametrize("payload", [
    [{"owner": "w1", "amount": 10}],
    {"accounts": [{"owner": "w1", "amount": 10}]},
    {"holders": [{"owner": "w1", "amount": 10}]},
])
def test_holder_shapes(payload):
    holders = parse_holders(payload)

    assert len(holders) == 1
    assert holders[0].wallet == "w1"
    assert holders[0].amount == 10.0
    assert holders[0].percentage is None


def test_holder_identity_fallbacks_and_junk():
    holders = parse_holders({"holders": [
        {"address": " w2 ", "amount": "5", "percentage": "1.5"},
        {"wallet": "w3", "balance": 7},
        {"amount": 9},          # no identity
        "not-a-record",
    ]})

    assert [h.wallet for h in holders] == ["w2", "w3"]
    assert holders[0].amount == 5.0
    assert holders[0].percentage == 1.5
    assert holders[1].amount == 7.0


@pytest.mark.parametrize("payload", [None, {}, "oops", {"holders": "nope"}, 42])
def test_malformed_holder_payloads_are_empty(payload):
    assert parse_holders(payload) == []


def test_accounts_envelope_checked_before_holders():
    payload = {"accounts": [{"owner": "a"}], "holders": [{"owner": "h"}]}
    assert [r["owner"] for r in extract_list(payload, ("accounts", "holders"))] == ["a"]


def test_token_info_nested():
    info = parse_token_info("Mint111", {
        "token": {"name": "Alpha", "symbol": "ALP", "decimals": 6,
                  "createdAt": "2024-01-01T00:00:00Z"},
        "totalSupply": "1000000",
    })

    assert info.token == "Mint111"
    assert info.name == "Alpha"
    assert info.symbol == "ALP"
    assert info.decimals == 6
    assert info.total_supply == 1_000_000.0
    assert info.creation_time == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_token_info_flat():
    info = parse_token_info("Mint222", {"name": "Beta", "symbol": "BET",
                                        "supply": 500, "decimals": "9",
                                        "createdAt": 1_700_000_000_000})

    assert info.name == "Beta"
    assert info.total_supply == 500.0
    assert info.decimals == 9
    assert info.creation_time == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


def test_token_info_defaults():
    info = parse_token_info("Mint333", None)

    assert info.name == "Unknown"
    assert info.symbol == "Mint"
    assert info.total_supply == 0.0
    assert info.decimals == 0
    assert info.creation_time is None


@pytest.mark.parametrize("value, expected", [
    (1_700_000_000, datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)),
    (1_700_000_000_000, datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)),
    ("1700000000", datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)),
    ("2023-11-14T22:13:20+00:00", datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)),
    (None, None),
    ("yesterday", None),
    (0, None),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_trades_shapes():
    trades = parse_trades({"trades": [
        {"token": "A", "time": 1_700_000_000, "type": "BUY", "pnl": "12.5"},
        {"token": {"mint": "B"}, "time": 1_700_000_600, "type": "sell"},
        {"token": {"address": "C"}},
    ]})

    assert [t.token for t in trades] == ["A", "B", "C"]
    assert trades[0].type == "buy"
    assert trades[0].pnl == 12.5
    assert trades[1].pnl == 0.0
    assert trades[2].time is None
    assert parse_trades([{"token": "A"}])[0].token == "A"


def test_portfolio_value():
    assert parse_portfolio_value({"total": 1234.5}) == 1234.5
    assert parse_portfolio_value({"totalValue": "99"}) == 99.0
    assert parse_portfolio_value(None) == 0.0


def test_pnl_unusable():
    assert parse_pnl(None) is None
    assert parse_pnl({}) is None
    assert parse_pnl([]) is None


def test_pnl_totals_and_positions():
    report = parse_pnl({
        "totalRealizedPnl": 100,
        "totalUnrealizedPnl": -20,
        "positions": [{"realizedPnl": 50, "unrealizedPnl": 10},
                      {"realizedPnl": -5}],
    })

    assert report.total_realized_pnl == 100.0
    assert report.total_unrealized_pnl == -20.0
    assert [position_pnl(p) for p in report.positions] == [60.0, -5.0]


def test_pnl_positions_keyed_by_token_and_summed():
    report = parse_pnl({"tokens": {
        "A": {"realized": 30, "unrealized": 5},
        "B": {"realized": -10, "unrealized": 0},
    }})

    assert report.total_realized_pnl == 20.0
    assert report.total_unrealized_pnl == 5.0
    assert {p["token"] for p in report.positions} == {"A", "B"}


def test_top_traders_identity_fields():
    traders = parse_top_traders({"traders": [
        {"wallet": "w1", "pnl": 10, "roi": 2.5, "total_trades": 4},
        {"owner": "w2", "total": 7, "trades": 3},
        {"address": "w3"},
        {"pnl": 1},
    ]})

    assert [t.wallet for t in traders] == ["w1", "w2", "w3"]
    assert traders[0].trades == 4
    assert traders[1].pnl == 7.0
    assert traders[1].trades == 3
    assert traders[2].pnl == 0.0


def test_first_buyers_bare_array_only():
    buyers = parse_first_buyers([{
        "wallet": "w1", "first_buy_time": 1_700_000_000_000, "total": 50,
        "total_invested": 200, "buy_transactions": 2, "sell_transactions": 1,
    }])

    assert len(buyers) == 1
    assert buyers[0].wallet == "w1"
    assert buyers[0].total == 50.0
    assert buyers[0].total_invested == 200.0
    assert buyers[0].first_buy_time is not None
    assert buyers[0].raw["total_invested"] == 200
    assert parse_first_buyers({"buyers": [{"wallet": "w1"}]}) == []
