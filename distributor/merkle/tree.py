"""
Merkle tree compatible with OpenZeppelin's `StandardMerkleTree`.

Leaves are `keccak256(keccak256(abi.encode(values)))`, sorted by hash before the tree is built.
The tree is a flat array of `2n - 1` nodes: the root sits at index 0, the children of node `i`
at `2i + 1` and `2i + 2`, and the sorted leaves are stored in reverse at the tail.
Internal nodes hash their children as a sorted pair, so a proof is just the list of siblings.
"""
from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Sequence

from eth_abi import encode
from eth_utils import encode_hex, keccak, to_bytes

from distributor.errors import RewardValidationError
from distributor.models import HexHash, TreeDump, TreeValue

LEAF_ENCODING = ["address", "address", "uint256"]


def coerce_value(value: Sequence[Any], leaf_encoding: list[str]) -> list[Any]:
    """Integers are dumped as decimal strings, turn them back into ints before encoding"""
    if len(value) != len(leaf_encoding):
        raise RewardValidationError(f"Leaf {value} does not match encoding {leaf_encoding}")
    return [
        int(v) if t.startswith(("uint", "int")) else v
        for t, v in zip(leaf_encoding, value)
    ]


def leaf_hash(value: Sequence[Any], leaf_encoding: list[str] = LEAF_ENCODING) -> bytes:
    return keccak(keccak(encode(leaf_encoding, coerce_value(value, leaf_encoding))))


def hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(b"".join(sorted([a, b])))


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Walk from the leaf to the root, folding in one sibling per level"""
    return functools.reduce(hash_pair, proof, leaf)


def to_hash(hex_hash: HexHash) -> bytes:
    try:
        node = to_bytes(hexstr=hex_hash)
    except (TypeError, ValueError) as e:
        raise RewardValidationError(f"Invalid hash: {hex_hash!r}") from e
    if len(node) != 32:
        raise RewardValidationError(f"Invalid hash length: {hex_hash!r}")
    return node


def make_tree(leaves: list[bytes]) -> list[bytes]:
    if len(leaves) == 0:
        raise RewardValidationError("Expected non-zero number of leaves")

    tree = [b""] * (2 * len(leaves) - 1)
    for i, leaf in enumerate(leaves):
        tree[len(tree) - 1 - i] = leaf
    for i in range(len(tree) - 1 - len(leaves), -1, -1):
        tree[i] = hash_pair(tree[2 * i + 1], tree[2 * i + 2])
    return tree


def sibling_index(index: int) -> int:
    return index + 1 if index % 2 == 1 else index - 1


def parent_index(index: int) -> int:
    return (index - 1) // 2


@dataclass(frozen=True)
class MerkleTree:
    """
    :param `values`: leaf values in canonical order (ascending leaf hash)
    :param `leaves`: the leaf hashes, same order as `values`
    :param `tree`: every node of the tree, root first
    """

    values: list[tuple]
    leaves: list[bytes]
    tree: list[bytes]
    leaf_encoding: tuple[str, ...] = tuple(LEAF_ENCODING)

    @staticmethod
    def of(
        values: Sequence[Sequence[Any]], leaf_encoding: list[str] = LEAF_ENCODING
    ) -> MerkleTree:
        hashed = sorted(
            ((leaf_hash(v, leaf_encoding), tuple(v)) for v in values),
            key=lambda pair: pair[0],
        )
        leaves = [h for h, _ in hashed]
        return MerkleTree(
            values=[v for _, v in hashed],
            leaves=leaves,
            tree=make_tree(leaves),
            leaf_encoding=tuple(leaf_encoding),
        )

    @staticmethod
    def load(dump: TreeDump) -> MerkleTree:
        """Rebuild a tree from its dump, refusing dumps that don't hash to the stored nodes"""
        if dump.format != "standard-v1":
            raise RewardValidationError(f"Unknown tree format {dump.format}")

        tree = MerkleTree.of([v.value for v in dump.values], dump.leafEncoding)
        if [encode_hex(n) for n in tree.tree] != dump.tree:
            raise RewardValidationError("Merkle tree does not match its values")
        for v in dump.values:
            stored = tree.tree[v.treeIndex] if v.treeIndex < len(tree.tree) else None
            if stored != leaf_hash(v.value, dump.leafEncoding):
                raise RewardValidationError(f"Leaf at tree index {v.treeIndex} is invalid")
        return tree

    @property
    def root(self) -> bytes:
        return self.tree[0]

    def tree_index(self, leaf_index: int) -> int:
        return len(self.tree) - 1 - leaf_index

    def proof(self, leaf_index: int) -> list[bytes]:
        if leaf_index < 0 or leaf_index >= len(self.leaves):
            raise IndexError(f"Leaf index {leaf_index} out of bounds")

        index = self.tree_index(leaf_index)
        proof = []
        while index > 0:
            proof.append(self.tree[sibling_index(index)])
            index = parent_index(index)
        return proof

    def verify(self, value: Sequence[Any], proof: Sequence[bytes]) -> bool:
        return process_proof(leaf_hash(value, list(self.leaf_encoding)), proof) == self.root

    def dump(self) -> TreeDump:
        return TreeDump(
            leafEncoding=list(self.leaf_encoding),
            tree=[encode_hex(n) for n in self.tree],
            values=[
                TreeValue(
                    value=[str(x) if isinstance(x, int) else x for x in v],
                    treeIndex=self.tree_index(i),
                )
                for i, v in enumerate(self.values)
            ],
        )
