import math
import random
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from distributor.models import (
    EthereumAddress,
    Incentive,
    LeaderboardPage,
    LeaderboardRecord,
    MockConfig,
)
from distributor.queries.leaderboard import LeaderboardSource

# Anvil's default dev accounts, so mock claims can be tested against a local chain
TEST_ADDRESSES = [
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
    "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65",
    "0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc",
    "0x976EA74026E726554dB657fA54763abd0C3a0aa9",
    "0x14dC79964da2C08b23698B3D3cc7Ca32193d9955",
    "0x23618e81E3f5cdF7f54C3d65f7FBc0aBf5B21E8f",
    "0xa0Ee7A142d267C1f36714E4a8F75612F20a79720",
]

CENTS = Decimal("0.01")


class MockIndexerSource(LeaderboardSource):
    """
    Generates synthetic leaderboards with the same pagination contract as the indexer.

    Rewards fall with position: row `p` of `n` gets
    `(maxRewards / n) * multiplier * ((n - p) / n) * factor`, with `factor` drawn from [0.7, 1.0].
    Pass a seeded `rng` for reproducible runs, or a `random_factor` to remove the noise entirely.
    """

    def __init__(
        self,
        config: MockConfig,
        rng: Optional[random.Random] = None,
        random_factor: Optional[float] = None,
        max_pages: int = 1000,
    ):
        self.config = config
        self.rng = rng or random.Random()
        self.random_factor = random_factor
        self.max_pages = max_pages

    def random_address(self) -> EthereumAddress:
        return "0x%040x" % self.rng.getrandbits(160)

    def address_at(self, position: int) -> EthereumAddress:
        """Fixed pool first, random addresses once the pool runs out"""
        if self.config.use_fixed_addresses and position < len(TEST_ADDRESSES):
            return TEST_ADDRESSES[position]
        return self.random_address()

    def factor(self) -> Decimal:
        if self.random_factor is not None:
            return Decimal(str(self.random_factor))
        return Decimal(str(0.7 + self.rng.random() * 0.3))

    def record(
        self,
        vault: EthereumAddress,
        position: int,
        max_rewards: Decimal,
        duration: int,
    ) -> LeaderboardRecord:
        total_users = self.config.user_count
        base = (Decimal(max_rewards) / total_users) * Decimal(str(self.config.reward_multiplier))
        weight = Decimal(total_users - position) / total_users
        rewards = base * weight * self.factor()

        return LeaderboardRecord(
            position=position + 1,
            user=self.address_at(position),
            vault=vault,
            rewards=rewards.quantize(CENTS, rounding=ROUND_HALF_UP),
            currentRewardsPerSecond=rewards / duration if duration > 0 else Decimal(0),
        )

    def fetch_page(
        self,
        vault: EthereumAddress,
        start_timestamp: int,
        end_timestamp: int,
        reward_rate: Decimal,
        max_rewards: Decimal,
        page: int,
        page_size: int,
    ) -> LeaderboardPage:
        total_users = self.config.user_count
        total_pages = math.ceil(total_users / page_size)
        page_users = min(page_size, total_users - page * page_size)
        now = int(time.time())

        if page >= total_pages or page_users <= 0:
            return LeaderboardPage(nPages=total_pages, isOver=True, timestamp=now)

        leaderboard = [
            self.record(vault, page * page_size + i, max_rewards, end_timestamp - start_timestamp)
            for i in range(page_users)
        ]
        return LeaderboardPage(
            leaderboard=leaderboard,
            nPages=total_pages,
            nElements=page_users,
            isOver=page >= total_pages - 1,
            timestamp=now,
        )

    def has_more_pages(self, page: int, response: LeaderboardPage) -> bool:
        return not response.isOver and page + 1 < response.nPages

    def fetch_leaderboard(
        self, incentive: Incentive, vault: EthereumAddress, page_size: int
    ) -> tuple[list[LeaderboardRecord], bool]:
        records, complete = super().fetch_leaderboard(incentive, vault, page_size)
        if records:
            self.log_stats(records, vault)
        return records, complete

    @staticmethod
    def log_stats(records: list[LeaderboardRecord], vault: EthereumAddress) -> None:
        total = sum((r.rewards for r in records), Decimal(0))
        print(f"    🎭 Mock Stats for {vault}:")
        print(f"       Users: {len(records)}")
        print(f"       Total Rewards: {total:.2f}")
        print(f"       Avg Reward: {total / len(records):.2f}")
        print(f"       Top Reward: {records[0].rewards:.2f}")
