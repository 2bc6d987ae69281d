from __future__ import annotations

from pydantic import BaseModel, field_validator

from distributor.models.types import EthereumAddress, RewardKey, normalize_address


class RewardEntry(BaseModel):
    """Aggregated rewards owed to `account` in `token`, in base units"""

    account: EthereumAddress
    token: EthereumAddress
    amount: int

    @field_validator("account", "token")
    @classmethod
    def lowercase_address(cls, addr: str):
        return normalize_address(addr)

    @property
    def key(self) -> RewardKey:
        return (self.account, self.token)

    @staticmethod
    def from_key(key: RewardKey, amount: int) -> RewardEntry:
        account, token = key
        return RewardEntry(account=account, token=token, amount=amount)
