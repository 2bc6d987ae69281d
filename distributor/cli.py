import json
import time
from datetime import datetime
from typing import Any, Optional, Union

import fire

from distributor.config import load_conf, with_mock
from distributor.env import DATA_DIR
from distributor.models import MOCK_PRESETS, Config, RootStore, Writer
from distributor.proofs import ProofService
from distributor.run import generate_tree


def _store(db: Optional[str]) -> RootStore:
    return RootStore(db) if db else RootStore(f"{DATA_DIR}/merkle-db.json")


def _dump(model: Any) -> Any:
    return None if model is None else model.model_dump(mode="json")


def _date(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def generate(
    config: Optional[str] = None,
    chain_id: Optional[int] = None,
    include_deprecated: Optional[bool] = None,
    dry_run: bool = False,
    mock: bool = False,
    preset: Optional[str] = None,
    users: Optional[int] = None,
    ipfs_hash: Optional[str] = None,
    db: Optional[str] = None,
) -> Optional[str]:
    """Generate a merkle tree from the incentive leaderboards and store it as a pending root"""
    conf = load_conf(config) if config else Config()
    overrides: dict[str, Any] = {}
    if chain_id is not None:
        overrides["chain_id"] = chain_id
    if include_deprecated is not None:
        overrides["include_deprecated"] = include_deprecated
    if overrides:
        conf = Config.model_validate({**conf.model_dump(), **overrides})
    if mock or preset or users:
        conf = with_mock(conf, preset, users)

    start = time.time()
    root_id = generate_tree(conf, store=_store(db), dry_run=dry_run, ipfs_hash=ipfs_hash)
    if root_id:
        print("\n✅ Tree generated successfully!")
        print(f"   Tree ID: {root_id}")
        print(f"   Duration: {time.time() - start:.2f}s")
    return root_id


def roots(limit: int = 50, offset: int = 0, db: Optional[str] = None) -> list[dict]:
    return [_dump(r) for r in _store(db).list_roots(limit, offset)]


def root(root_id: str, db: Optional[str] = None) -> Optional[dict]:
    return _dump(ProofService(_store(db)).get_root(root_id))


def proof(account: str, token: str, root_id: Optional[str] = None, db: Optional[str] = None):
    return _dump(ProofService(_store(db)).get_proof(account, token, root_id))


def proofs(account: str, root_id: Optional[str] = None, db: Optional[str] = None) -> list[dict]:
    return [_dump(p) for p in ProofService(_store(db)).get_account_proofs(account, root_id)]


def verify(
    account: str,
    token: str,
    amount: Union[int, str],
    proof: Union[list, str],
    root_id: str,
    db: Optional[str] = None,
) -> bool:
    """`proof` is a list of hashes, or a JSON encoded list"""
    if isinstance(proof, str):
        proof = json.loads(proof)
    return ProofService(_store(db)).verify_proof(account, token, str(amount), proof, root_id)


def status(
    root_id: str,
    status: str,
    submitted_at: Optional[str] = None,
    valid_at: Optional[str] = None,
    db: Optional[str] = None,
) -> dict:
    updated = _store(db).update_status(root_id, status, _date(submitted_at), _date(valid_at))
    return _dump(updated)


def export(root_id: str, out: str = "reports", db: Optional[str] = None) -> Optional[str]:
    snapshot = _store(db).get_by_id(root_id)
    if snapshot is None:
        print(f"❌ Merkle root {root_id} not found")
        return None
    writer = Writer(snapshot, out)
    writer.write_all()
    print(f"😃 Wrote claims and summary to {writer.path}")
    return writer.path


def presets() -> dict:
    return {name: p.model_dump() for name, p in MOCK_PRESETS.items()}


if __name__ == "__main__":
    fire.Fire(
        {
            "generate": generate,
            "roots": roots,
            "root": root,
            "proof": proof,
            "proofs": proofs,
            "verify": verify,
            "status": status,
            "export": export,
            "presets": presets,
        }
    )
