from collections import defaultdict
from typing import Optional

from distributor.merkle import build_snapshot
from distributor.models import Config, RewardEntry, RootStore, Vault
from distributor.queries import IndexerSource, LeaderboardSource, MockIndexerSource, get_vaults
from distributor.rewards import RewardAggregator, TOKEN_DECIMALS


def get_source(conf: Config) -> LeaderboardSource:
    """The mock and the live indexer are interchangeable, the config decides which one a run uses"""
    if conf.mock.enabled:
        return MockIndexerSource(conf.mock, max_pages=conf.max_pages)
    return IndexerSource(
        conf.chain_id,
        timeout=conf.request_timeout,
        page_delay=conf.page_delay,
        max_pages=conf.max_pages,
    )


def summarize(entries: list[RewardEntry]) -> dict[str, tuple[int, int]]:
    """Total rewards and number of recipients, per token"""
    totals: dict[str, int] = defaultdict(int)
    users: dict[str, set[str]] = defaultdict(set)
    for e in entries:
        totals[e.token] += e.amount
        users[e.token].add(e.account)

    print("\n📈 Final Reward Summary:")
    for token, total in totals.items():
        print(
            f"   {token}: {total / 10**TOKEN_DECIMALS:.2f} total rewards across {len(users[token])} users"
        )
    return {token: (total, len(users[token])) for token, total in totals.items()}


def generate_tree(
    conf: Config,
    source: Optional[LeaderboardSource] = None,
    store: Optional[RootStore] = None,
    dry_run: bool = False,
    vaults: Optional[list[Vault]] = None,
    ipfs_hash: Optional[str] = None,
) -> Optional[str]:
    """
    Runs the full pipeline for one chain: vaults -> aggregated rewards -> merkle tree -> store.
    Returns the id of the new root, or None if nothing was generated (no rewards, or a dry run).
    """
    print(
        f"🌳 {'Simulating' if dry_run else 'Generating'} Merkle tree for chain {conf.chain_id}"
        f"{' (including deprecated)' if conf.include_deprecated else ''}..."
    )
    if conf.mock.enabled:
        print(
            f"🎭 Using mock indexer with {conf.mock.user_count} users per incentive "
            f"({'fixed' if conf.mock.use_fixed_addresses else 'random'} addresses)"
        )

    if vaults is None:
        vaults = get_vaults(conf)
    print(f"📊 Found {len(vaults)} vaults")

    total_incentives = sum(len(v.incentives) for v in vaults)
    print(f"💰 Total incentives to process: {total_incentives}")
    if total_incentives == 0:
        print("⚠️  No incentives found. Tree generation skipped.")
        return None

    aggregator = RewardAggregator(
        source if source is not None else get_source(conf),
        conf.token_addresses,
        conf.chain_id,
        page_size=conf.page_size,
    )
    rewards = aggregator.aggregate(vaults, conf.include_deprecated)
    rewards = [r for r in rewards if r.amount >= conf.min_rewards]

    print(f"\n🎯 Final result: {len(rewards)} reward entries")
    if len(rewards) == 0:
        print("⚠️  No user rewards found. Tree generation skipped.")
        return None

    summarize(rewards)

    if dry_run:
        print("\n🔍 Dry run completed. No tree was generated.")
        return None

    snapshot = build_snapshot(rewards, chain_id=conf.chain_id, ipfs_hash=ipfs_hash)
    if store is None:
        store = RootStore()
    root_id = store.save(snapshot)
    print(f"🚀 Saved merkle root {snapshot.merkleRoot.root} with id {root_id}")
    return root_id
