from typing import Optional, Sequence, Union

from distributor.errors import RewardValidationError
from distributor.merkle.tree import leaf_hash, process_proof, to_hash
from distributor.models import (
    EthereumAddress,
    HexHash,
    LeafEntry,
    MerkleRoot,
    MerkleSnapshot,
    RootStore,
    normalize_address,
)


class ProofService:
    """
    Read side of the distributor: serves claim proofs out of the root store.
    Without a `root_id`, lookups resolve against the latest active root.
    Lookups never mix leaves from more than one root.
    """

    def __init__(self, store: RootStore):
        self.store = store

    def _resolve(self, root_id: Optional[str]) -> Optional[MerkleSnapshot]:
        if root_id:
            return self.store.get_by_id(root_id)
        return self.store.get_latest_active()

    def get_root(self, root_id: str) -> Optional[MerkleRoot]:
        snapshot = self.store.get_by_id(root_id)
        return snapshot.merkleRoot if snapshot else None

    def get_proof(
        self, account: EthereumAddress, token: EthereumAddress, root_id: Optional[str] = None
    ) -> Optional[LeafEntry]:
        account = normalize_address(account)
        token = normalize_address(token)

        snapshot = self._resolve(root_id)
        if snapshot is None:
            return None
        return snapshot.find(account, token)

    def get_account_proofs(
        self, account: EthereumAddress, root_id: Optional[str] = None
    ) -> list[LeafEntry]:
        account = normalize_address(account)

        snapshot = self._resolve(root_id)
        if snapshot is None:
            return []
        return snapshot.for_account(account)

    def verify_proof(
        self,
        account: EthereumAddress,
        token: EthereumAddress,
        amount: Union[int, str],
        proof: Sequence[HexHash],
        root_id: str,
    ) -> bool:
        """
        Recompute the root from the leaf and its proof and compare with the stored root.
        This is a sanity check for operators: claimants verify against the on-chain root themselves.
        """
        snapshot = self.store.get_by_id(root_id)
        if snapshot is None:
            return False

        value = [normalize_address(account), normalize_address(token), parse_amount(amount)]
        computed = process_proof(leaf_hash(value), [to_hash(p) for p in proof])
        return computed == to_hash(snapshot.merkleRoot.root)


def parse_amount(amount: Union[int, str]) -> int:
    if isinstance(amount, bool):
        raise RewardValidationError(f"Invalid amount: {amount!r}")
    if isinstance(amount, int):
        value = amount
    elif isinstance(amount, str) and amount.isascii() and amount.isdigit():
        value = int(amount)
    else:
        raise RewardValidationError(f"Invalid amount: {amount!r}")
    if value < 0 or value >= 2**256:
        raise RewardValidationError(f"Invalid amount: {amount!r}")
    return value
