import itertools
from decimal import Decimal

import pytest

from distributor.errors import RewardValidationError, SourceUnavailableError
from distributor.models import LeaderboardRecord, RewardEntry
from distributor.rewards import RewardAggregator, merge_rewards, to_base_units
from distributor.test.conftest import (
    CHAIN_ID,
    NOW,
    OTHER_TOKEN,
    TOKEN,
    StaticSource,
    _addresses,
    _vaults,
    incentive,
    record,
    vault,
)

WEI = 10**18
A, B, C = _addresses[:3]
V1, V2, V3 = _vaults

TOKENS = {CHAIN_ID: {"MGV": TOKEN, "WETH": OTHER_TOKEN}}


def aggregator(source: StaticSource, chain_id: int = CHAIN_ID) -> RewardAggregator:
    return RewardAggregator(source, TOKENS, chain_id, page_size=2, now=lambda: NOW)


def as_dict(entries: list[RewardEntry]) -> dict:
    return {(e.account, e.token): e.amount for e in entries}


@pytest.mark.parametrize(
    "display, expected",
    [
        (Decimal("1.5"), 15 * 10**17),
        (Decimal("123.456789012345678901"), 123456789012345678901),
        (Decimal("0.0000000000000000019"), 1),
        (Decimal("0.0000000000000000009"), 0),
        (Decimal("1000000000"), 10**27),
        (0.1, 10**17),
        ("2", 2 * WEI),
        (3, 3 * WEI),
    ],
)
def test_to_base_units_floors(display, expected):
    assert to_base_units(display) == expected


@pytest.mark.parametrize("display", [Decimal("NaN"), Decimal("Infinity"), "abc"])
def test_to_base_units_rejects(display):
    with pytest.raises(RewardValidationError):
        to_base_units(display)


def test_merge_rewards():
    into = {(A, TOKEN): 1}
    merge_rewards(into, {(A, TOKEN): 2, (B, TOKEN): 3})
    assert into == {(A, TOKEN): 3, (B, TOKEN): 3}


def test_two_incentives_same_vault_are_summed():
    source = StaticSource(
        boards={
            (V1, NOW - 100): [[record(A, V1, "0.0000000000000001")]],
            (V1, NOW - 50): [[record(A, V1, "0.00000000000000005")]],
        }
    )
    vaults = [vault(V1, [incentive(start=NOW - 100), incentive(start=NOW - 50)])]

    entries = aggregator(source).aggregate(vaults)

    assert entries == [RewardEntry(account=A, token=TOKEN, amount=150)]


def test_pages_and_vaults_accumulate():
    source = StaticSource(
        boards={
            (V1, NOW - 100): [
                [record(A, V1, "1"), record(B, V1, "2")],
                [record(C, V1, "3")],
            ],
            (V2, NOW - 100): [[record(A, V2, "0.5")]],
            (V2, NOW - 10): [[record(A, V2, "4"), record(B, V2, "1.25")]],
        }
    )
    vaults = [
        vault(V1, [incentive(start=NOW - 100)]),
        vault(V2, [incentive(start=NOW - 100), incentive(start=NOW - 10, token="WETH")]),
    ]

    agg = aggregator(source)
    entries = agg.aggregate(vaults)

    assert as_dict(entries) == {
        (A, TOKEN): 15 * 10**17,
        (B, TOKEN): 2 * WEI,
        (C, TOKEN): 3 * WEI,
        (A, OTHER_TOKEN): 4 * WEI,
        (B, OTHER_TOKEN): 125 * 10**16,
    }
    assert [e.key for e in entries] == sorted(e.key for e in entries)
    assert agg.stats.vaults_processed == 2
    assert agg.stats.incentives_processed == 3


def test_duplicate_user_in_leaderboard_is_summed():
    source = StaticSource(
        boards={(V1, NOW - 100): [[record(A, V1, "1")], [record(A, V1, "2")]]}
    )
    entries = aggregator(source).aggregate([vault(V1, [incentive(start=NOW - 100)])])
    assert as_dict(entries) == {(A, TOKEN): 3 * WEI}


def test_deprecated_vaults():
    source = StaticSource(boards={(V1, NOW - 100): [[record(A, V1, "1")]]})
    vaults = [vault(V1, [incentive(start=NOW - 100)], deprecated=True)]

    agg = aggregator(source)
    assert agg.aggregate(vaults) == []
    assert agg.stats.vaults_skipped == 1
    assert source.calls == []

    assert as_dict(agg.aggregate(vaults, include_deprecated=True)) == {(A, TOKEN): WEI}


def test_future_incentives_skipped():
    source = StaticSource(
        boards={
            (V1, NOW - 100): [[record(A, V1, "1")]],
            (V1, NOW + 100): [[record(B, V1, "1")]],
        }
    )
    vaults = [vault(V1, [incentive(start=NOW + 100), incentive(start=NOW - 100)])]

    agg = aggregator(source)
    entries = agg.aggregate(vaults)

    assert as_dict(entries) == {(A, TOKEN): WEI}
    assert agg.stats.incentives_future == 1
    assert all(start == NOW - 100 for _, start, _ in source.calls)


def test_incentive_starting_now_is_processed():
    source = StaticSource(boards={(V1, NOW): [[record(A, V1, "1")]]})
    entries = aggregator(source).aggregate([vault(V1, [incentive(start=NOW)])])
    assert as_dict(entries) == {(A, TOKEN): WEI}


def test_failed_page_keeps_earlier_pages():
    source = StaticSource(
        boards={
            (V1, NOW - 100): [
                [record(A, V1, "1")],
                SourceUnavailableError("503 Service Unavailable"),
                [record(B, V1, "1")],
            ],
            (V1, NOW - 50): [[record(C, V1, "2")]],
        }
    )
    vaults = [vault(V1, [incentive(start=NOW - 100), incentive(start=NOW - 50)])]

    agg = aggregator(source)
    entries = agg.aggregate(vaults)

    assert as_dict(entries) == {(A, TOKEN): WEI, (C, TOKEN): 2 * WEI}
    assert agg.stats.incentives_partial == 1
    assert agg.stats.incentives_processed == 2


def test_conversion_error_skips_whole_incentive():
    bad = LeaderboardRecord.model_construct(
        position=2, user=B, vault=V1, rewards=Decimal("NaN"), currentRewardsPerSecond=Decimal(0)
    )
    source = StaticSource(
        boards={
            (V1, NOW - 100): [[record(A, V1, "1"), bad]],
            (V1, NOW - 50): [[record(C, V1, "2")]],
        }
    )
    vaults = [vault(V1, [incentive(start=NOW - 100), incentive(start=NOW - 50)])]

    agg = aggregator(source)
    entries = agg.aggregate(vaults)

    assert as_dict(entries) == {(C, TOKEN): 2 * WEI}
    assert agg.stats.incentives_failed == 1


def test_unknown_token_is_fatal():
    source = StaticSource(boards={(V1, NOW - 100): [[record(A, V1, "1")]]})
    vaults = [
        vault(V1, [incentive(start=NOW - 100)]),
        vault(V2, [incentive(start=NOW - 100, token="DOGE")]),
    ]

    with pytest.raises(RewardValidationError, match="Unknown token symbol 'DOGE'"):
        aggregator(source).aggregate(vaults)


def test_unknown_chain_is_fatal_before_fetching():
    source = StaticSource(boards={(V1, NOW - 100): [[record(A, V1, "1")]]})

    with pytest.raises(RewardValidationError, match="No token addresses configured for chain 1"):
        aggregator(source, chain_id=1).aggregate([vault(V1, [incentive(start=NOW - 100)])])
    assert source.calls == []


def test_zero_rewards_return_no_entries():
    source = StaticSource(
        boards={
            (V1, NOW - 100): [[record(A, V1, "0"), record(B, V1, "0.0000000000000000001")]],
            (V2, NOW - 100): [[record(C, V2, "-5")]],
        }
    )
    vaults = [vault(V1, [incentive(start=NOW - 100)]), vault(V2, [incentive(start=NOW - 100)])]

    assert aggregator(source).aggregate(vaults) == []


def test_vault_order_does_not_matter():
    boards = {
        (V1, NOW - 100): [[record(A, V1, "1.1"), record(B, V1, "2.2")]],
        (V2, NOW - 100): [[record(A, V2, "3.3")], [record(C, V2, "0.7")]],
        (V3, NOW - 100): [[record(B, V3, "0.123456789")]],
    }
    vaults = [
        vault(V1, [incentive(start=NOW - 100)]),
        vault(V2, [incentive(start=NOW - 100)]),
        vault(V3, [incentive(start=NOW - 100, token="WETH")]),
    ]

    results = [
        aggregator(StaticSource(boards=boards)).aggregate(list(order))
        for order in itertools.permutations(vaults)
    ]

    assert all(r == results[0] for r in results)
    assert as_dict(results[0])[(A, TOKEN)] == 44 * 10**17
