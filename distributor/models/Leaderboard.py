from decimal import Decimal

from pydantic import BaseModel, field_validator

from distributor.models.types import EthereumAddress, normalize_address


class LeaderboardRecord(BaseModel):
    """
    One row of an incentive leaderboard as served by the indexer.
    `rewards` is a display amount with 18 fractional digits, it must be
    converted to base units before it is summed.
    """

    position: int
    user: EthereumAddress
    vault: EthereumAddress
    rewards: Decimal
    currentRewardsPerSecond: Decimal = Decimal(0)

    @field_validator("user", "vault")
    @classmethod
    def lowercase_address(cls, addr: str):
        return normalize_address(addr)


class LeaderboardPage(BaseModel):
    """
    A single page of leaderboard data
    :param `nPages`: total number of pages for the incentive at the requested page size
    :param `isOver`: set by sources that flag the last page explicitly
    """

    leaderboard: list[LeaderboardRecord] = []
    nPages: int = 0
    nElements: int = 0
    isOver: bool = False
    timestamp: int = 0
