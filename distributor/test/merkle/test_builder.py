import random
from collections import defaultdict

import pytest

from distributor.errors import RewardValidationError
from distributor.merkle import MerkleTree, build_snapshot, leaf_hash, process_proof, to_hash
from distributor.models import RewardEntry, RootStatus
from distributor.test.conftest import OTHER_TOKEN, TOKEN, _addresses


@pytest.fixture
def entries() -> list[RewardEntry]:
    rewards = [
        RewardEntry(account=a, token=TOKEN, amount=(i + 1) * 10**18)
        for i, a in enumerate(_addresses)
    ]
    rewards += [
        RewardEntry(account=_addresses[0], token=OTHER_TOKEN, amount=42),
        RewardEntry(account=_addresses[2], token=OTHER_TOKEN, amount=7),
    ]
    return rewards


def test_build_snapshot_metadata(entries):
    snapshot = build_snapshot(entries, chain_id=8453, ipfs_hash="Qm123")
    root = snapshot.merkleRoot

    assert root.status == RootStatus.PENDING
    assert root.chainId == 8453
    assert root.ipfsHash == "Qm123"
    assert root.recipientCount == len(entries) == len(snapshot.entries)
    assert root.createdAt == root.updatedAt
    assert root.submittedAt is None and root.validAt is None
    assert all(e.merkleRootId == root.id for e in snapshot.entries)


def test_totals_match_leaves(entries):
    snapshot = build_snapshot(entries)

    totals: dict[str, int] = defaultdict(int)
    for e in snapshot.entries:
        totals[e.token] += int(e.amount)

    assert {t: str(v) for t, v in totals.items()} == snapshot.merkleRoot.totalRewards
    assert snapshot.merkleRoot.totalRewards[TOKEN] == str(15 * 10**18)
    assert snapshot.merkleRoot.totalRewards[OTHER_TOKEN] == "49"


def test_every_leaf_proves_against_root(entries):
    snapshot = build_snapshot(entries)
    root = to_hash(snapshot.merkleRoot.root)

    for e in snapshot.entries:
        leaf = leaf_hash([e.account, e.token, e.amount])
        assert process_proof(leaf, [to_hash(p) for p in e.proof]) == root


def test_leaf_index_follows_canonical_order(entries):
    snapshot = build_snapshot(entries)
    tree = MerkleTree.load(snapshot.tree)

    assert [e.leafIndex for e in snapshot.entries] == list(range(len(entries)))
    for e in snapshot.entries:
        assert tree.tree_index(e.leafIndex) == e.treeIndex
        assert tree.leaves[e.leafIndex] == leaf_hash([e.account, e.token, e.amount])


def test_build_is_deterministic(entries):
    first = build_snapshot(entries)
    shuffled = list(entries)
    random.Random(1).shuffle(shuffled)
    second = build_snapshot(shuffled)

    def leaves(s):
        return [(e.account, e.token, e.amount, e.proof, e.leafIndex) for e in s.entries]

    assert first.merkleRoot.root == second.merkleRoot.root
    assert leaves(first) == leaves(second)
    assert first.tree == second.tree
    assert first.merkleRoot.id != second.merkleRoot.id


@pytest.mark.parametrize("amount", [0, -1, 2**256])
def test_rejects_bad_amounts(entries, amount):
    entries.append(RewardEntry(account=_addresses[4], token=OTHER_TOKEN, amount=amount))
    with pytest.raises(RewardValidationError, match="Invalid amount"):
        build_snapshot(entries)


def test_rejects_bad_address(entries):
    entries.append(RewardEntry.model_construct(account="0xnope", token=TOKEN, amount=1))
    with pytest.raises(RewardValidationError, match="Invalid Ethereum address"):
        build_snapshot(entries)


def test_rejects_duplicates(entries):
    entries.append(RewardEntry(account=_addresses[0], token=TOKEN, amount=5))
    with pytest.raises(RewardValidationError, match="Duplicate reward entry"):
        build_snapshot(entries)


def test_rejects_empty():
    with pytest.raises(RewardValidationError):
        build_snapshot([])
