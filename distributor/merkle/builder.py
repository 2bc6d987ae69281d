import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from eth_utils import encode_hex

from distributor.errors import RewardValidationError
from distributor.merkle.tree import MerkleTree
from distributor.models import (
    LeafEntry,
    MerkleRoot,
    MerkleSnapshot,
    RewardEntry,
    RootStatus,
    normalize_address,
)

MAX_UINT256 = 2**256 - 1


def validate_entry(entry: RewardEntry) -> tuple[str, str, int]:
    """
    Zero or negative amounts should have been filtered out by the aggregator,
    so finding one here means something upstream is broken: reject rather than drop.
    """
    account = normalize_address(entry.account)
    token = normalize_address(entry.token)
    amount = entry.amount

    if isinstance(amount, bool) or not isinstance(amount, int):
        raise RewardValidationError(f"Invalid amount: {amount!r}")
    if amount <= 0 or amount > MAX_UINT256:
        raise RewardValidationError(f"Invalid amount: {amount}")

    return (account, token, amount)


def total_rewards_by_token(values: list[tuple[str, str, int]]) -> dict[str, str]:
    totals: dict[str, int] = defaultdict(int)
    for _, token, amount in values:
        totals[token] += amount
    return {token: str(total) for token, total in totals.items()}


def build_snapshot(
    entries: list[RewardEntry],
    chain_id: Optional[int] = None,
    ipfs_hash: Optional[str] = None,
) -> MerkleSnapshot:
    """
    Validate the reward entries, build the tree and compute every proof.
    The whole batch is rejected if a single entry is invalid, nothing is returned to persist.

    :param `entries`: aggregated rewards, one per (account, token)
    :param `chain_id`: chain the rewards were aggregated for
    :param `ipfs_hash`: optional pointer to a published copy of the tree
    """
    if len(entries) == 0:
        raise RewardValidationError("Cannot build a merkle tree without reward entries")

    values = [validate_entry(e) for e in entries]

    seen: set[tuple[str, str]] = set()
    for account, token, _ in values:
        if (account, token) in seen:
            raise RewardValidationError(f"Duplicate reward entry for {account} in {token}")
        seen.add((account, token))

    tree = MerkleTree.of(values)
    now = datetime.now(timezone.utc)

    merkle_root = MerkleRoot(
        id=str(uuid.uuid4()),
        root=encode_hex(tree.root),
        chainId=chain_id,
        ipfsHash=ipfs_hash,
        totalRewards=total_rewards_by_token(values),
        recipientCount=len(values),
        status=RootStatus.PENDING,
        createdAt=now,
        updatedAt=now,
    )

    leaf_entries = [
        LeafEntry(
            merkleRootId=merkle_root.id,
            account=account,
            token=token,
            amount=str(amount),
            proof=[encode_hex(p) for p in tree.proof(i)],
            leafIndex=i,
            treeIndex=tree.tree_index(i),
        )
        for i, (account, token, amount) in enumerate(tree.values)
    ]

    return MerkleSnapshot(merkleRoot=merkle_root, entries=leaf_entries, tree=tree.dump())
