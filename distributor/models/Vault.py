from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from distributor.models.types import EthereumAddress, normalize_address


class Incentive(BaseModel):
    """
    A time-bounded reward program attached to a vault
    :param `token`: symbol of the reward token, resolved to an address per chain
    :param `maxRewards`: cap on the rewards the incentive can emit, in display units
    """

    vault: Optional[EthereumAddress] = None
    startTimestamp: int
    endTimestamp: int
    maxRewards: Decimal
    rewardRate: Decimal
    token: str

    @field_validator("vault")
    @classmethod
    def lowercase_vault(cls, addr: Optional[str]):
        return None if addr is None else normalize_address(addr)

    def has_started(self, now: int) -> bool:
        return now >= self.startTimestamp


class Vault(BaseModel):
    address: EthereumAddress
    isDeprecated: bool = False
    incentives: list[Incentive] = []

    @field_validator("address")
    @classmethod
    def lowercase_address(cls, addr: str):
        return normalize_address(addr)
