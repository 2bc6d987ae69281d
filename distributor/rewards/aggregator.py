import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from distributor.errors import RewardValidationError, SourceUnavailableError
from distributor.models import EthereumAddress, Incentive, RewardEntry, Vault
from distributor.queries.leaderboard import LeaderboardSource
from distributor.rewards.common import (
    RewardMap,
    add_reward,
    merge_rewards,
    resolve_token,
    to_base_units,
)


@dataclass
class AggregationStats:
    vaults_processed: int = 0
    vaults_skipped: int = 0
    incentives_processed: int = 0
    incentives_future: int = 0
    incentives_partial: int = 0
    incentives_failed: int = 0


def iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class RewardAggregator:
    """
    Walks vaults -> incentives -> leaderboard pages and sums every user's rewards per token.

    Rewards are accumulated per incentive, merged into the vault, then into the global total.
    An incentive that fails part way is logged and skipped. A token or chain missing from
    `token_addresses` is a configuration error and aborts the whole run.
    """

    def __init__(
        self,
        source: LeaderboardSource,
        token_addresses: dict[int, dict[str, EthereumAddress]],
        chain_id: int,
        page_size: int = 100,
        now: Optional[Callable[[], int]] = None,
    ):
        self.source = source
        self.token_addresses = token_addresses
        self.chain_id = chain_id
        self.page_size = page_size
        self.now = now or (lambda: int(time.time()))
        self.stats = AggregationStats()

    def token_address(self, symbol: str) -> EthereumAddress:
        return resolve_token(self.token_addresses, self.chain_id, symbol)

    def process_incentive(
        self, incentive: Incentive, vault: EthereumAddress, token: EthereumAddress
    ) -> RewardMap:
        print(f"💰 Processing incentive for vault {vault}")
        print(f"   Token: {incentive.token} ({token})")
        print(f"   Period: {iso(incentive.startTimestamp)} - {iso(incentive.endTimestamp)}")
        print(f"   Max Rewards: {incentive.maxRewards}")
        print(f"   Reward Rate: {incentive.rewardRate}")

        records, complete = self.source.fetch_leaderboard(incentive, vault, self.page_size)
        if not complete:
            self.stats.incentives_partial += 1
            print(f"  ⚠️  Leaderboard incomplete, using {len(records)} fetched entries")

        rewards: RewardMap = {}
        for record in records:
            amount = to_base_units(record.rewards)
            if amount > 0:
                add_reward(rewards, (record.user, token), amount)

        print(f"  ✅ Processed {len({user for user, _ in rewards})} users with rewards")
        return rewards

    def process_vault(self, vault: Vault, include_deprecated: bool, now: int) -> RewardMap:
        if vault.isDeprecated and not include_deprecated:
            self.stats.vaults_skipped += 1
            return {}

        print(f"\n📦 Processing vault: {vault.address} ({len(vault.incentives)} incentives)")
        vault_rewards: RewardMap = {}

        for i, incentive in enumerate(vault.incentives):
            print(f"\n🎯 Incentive {i + 1}/{len(vault.incentives)}")

            if not incentive.has_started(now):
                self.stats.incentives_future += 1
                print(f"🔮 Skipping future incentive (starts {iso(incentive.startTimestamp)})")
                continue

            # outside the try: an unknown token must abort the run, not just this incentive
            token = self.token_address(incentive.token)

            try:
                incentive_rewards = self.process_incentive(incentive, vault.address, token)
            except (RewardValidationError, SourceUnavailableError) as e:
                self.stats.incentives_failed += 1
                print(f"❌ Error processing incentive: {e}")
                continue

            self.stats.incentives_processed += 1
            merge_rewards(vault_rewards, incentive_rewards)

        self.stats.vaults_processed += 1
        return vault_rewards

    def aggregate(self, vaults: list[Vault], include_deprecated: bool = False) -> list[RewardEntry]:
        """
        :param `vaults`: every vault for the chain, with incentives
        :param `include_deprecated`: also pay out incentives on deprecated vaults
        :return: one entry per (account, token) with a non-zero total, sorted by account then token
        """
        if self.chain_id not in self.token_addresses:
            raise RewardValidationError(f"No token addresses configured for chain {self.chain_id}")

        self.stats = AggregationStats()
        now = self.now()
        global_rewards: RewardMap = {}

        print(f"🔄 Processing {len(vaults)} vaults...")
        for i, vault in enumerate(vaults):
            print(f"\n📋 Vault {i + 1}/{len(vaults)}")
            merge_rewards(global_rewards, self.process_vault(vault, include_deprecated, now))

        entries = [
            RewardEntry.from_key(key, amount)
            for key, amount in sorted(global_rewards.items())
            if amount > 0
        ]

        users = {account for account, _ in global_rewards}
        print(f"\n🔗 Final aggregation: {len(entries)} reward entries for {len(users)} unique users")
        return entries
