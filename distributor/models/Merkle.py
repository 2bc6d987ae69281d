from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from distributor.models.types import (
    BigNumber,
    EthereumAddress,
    HexHash,
    normalize_address,
)


class RootStatus(str, Enum):
    """
    :state PENDING: tree generated, not yet submitted on chain
    :state SUBMITTED: root sent to the settlement layer
    :state ACTIVE: root is claimable, proofs are served from it by default
    :state REVOKED: root withdrawn
    """

    PENDING = "pending"
    SUBMITTED = "submitted"
    ACTIVE = "active"
    REVOKED = "revoked"


class MerkleRoot(BaseModel):
    """
    Metadata for one tree generation run. Only the status and its timestamps change after creation.
    :param `totalRewards`: sum of all leaf amounts, keyed by token address
    :param `recipientCount`: number of leaves in the tree
    """

    id: str
    root: HexHash
    chainId: Optional[int] = None
    ipfsHash: Optional[str] = None
    totalRewards: dict[EthereumAddress, BigNumber]
    recipientCount: int
    status: RootStatus = RootStatus.PENDING
    submittedAt: Optional[datetime] = None
    validAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime


class LeafEntry(BaseModel):
    """
    Claim data for one (account, token) leaf.
    :param `leafIndex`: position of the leaf in the hash-sorted leaf ordering
    :param `treeIndex`: position of the leaf in the flat tree array
    """

    merkleRootId: str
    account: EthereumAddress
    token: EthereumAddress
    amount: BigNumber
    proof: list[HexHash]
    leafIndex: int
    treeIndex: int

    @field_validator("account", "token")
    @classmethod
    def lowercase_address(cls, addr: str):
        return normalize_address(addr)

    @field_validator("amount")
    @classmethod
    def integer_amount(cls, amount: str):
        if not (amount.isascii() and amount.isdigit()):
            raise ValueError(f"Invalid amount: {amount}")
        return amount


class TreeValue(BaseModel):
    value: list[Any]
    treeIndex: int


class TreeDump(BaseModel):
    """Dump of the full tree, same layout as OpenZeppelin's StandardMerkleTree `dump()`"""

    format: str = "standard-v1"
    leafEncoding: list[str]
    tree: list[HexHash]
    values: list[TreeValue]


class MerkleSnapshot(BaseModel):
    """Everything persisted for a single tree: root metadata, every leaf and the tree itself"""

    merkleRoot: MerkleRoot
    entries: list[LeafEntry]
    tree: TreeDump

    def find(self, account: EthereumAddress, token: EthereumAddress) -> Optional[LeafEntry]:
        return next(
            (e for e in self.entries if e.account == account and e.token == token),
            None,
        )

    def for_account(self, account: EthereumAddress) -> list[LeafEntry]:
        return [e for e in self.entries if e.account == account]
