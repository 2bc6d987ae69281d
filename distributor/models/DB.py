import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from tinydb import TinyDB, where
from tinydb.storages import Storage
from tinydb.table import Document

from distributor.env import DATA_DIR
from distributor.errors import NotFoundError, RewardValidationError, StorageError
from distributor.models.Merkle import MerkleRoot, MerkleSnapshot, RootStatus


class AtomicJSONStorage(Storage):
    """
    JSON file storage that never leaves a half written file behind:
    the whole database is written to a temporary file which then replaces the original.
    """

    def __init__(self, path: str, indent: Optional[int] = None, **kwargs):
        self._path = Path(path)
        self._indent = indent
        self._kwargs = kwargs

    def read(self) -> Optional[dict]:
        if not self._path.exists():
            return None
        with open(self._path, "r") as f:
            raw = f.read()
        if not raw:
            return None
        return json.loads(raw)

    def write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        with open(tmp, "w") as f:
            f.write(json.dumps(data, indent=self._indent, **self._kwargs))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._path)


class RootStore(TinyDB):
    """
    Persists one document per merkle snapshot: the root metadata, every leaf with its proof, and the tree dump.
    A snapshot is written with a single insert, so readers either see all of it or none of it.
    """

    def __init__(self, path: str = f"{DATA_DIR}/merkle-db.json", **kwargs):
        self._lock = threading.RLock()
        super().__init__(path, storage=AtomicJSONStorage, indent=4, **kwargs)
        # no query cache: other instances may write to the same file
        self.snapshots = self.table("snapshots", cache_size=0)

    def _find(self, root_id: str) -> Optional[Document]:
        try:
            return self.snapshots.get(where("merkleRoot")["id"] == root_id)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read merkle root {root_id}: {e}") from e

    def _all(self) -> list[Document]:
        try:
            return self.snapshots.all()
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read merkle roots: {e}") from e

    @staticmethod
    def _parse(doc: Document) -> MerkleSnapshot:
        try:
            return MerkleSnapshot.model_validate(dict(doc))
        except ValueError as e:
            raise StorageError(f"Corrupt snapshot in document {doc.doc_id}: {e}") from e

    def save(self, snapshot: MerkleSnapshot) -> str:
        root_id = snapshot.merkleRoot.id
        with self._lock:
            if self._find(root_id) is not None:
                raise StorageError(f"Merkle root {root_id} already exists")
            try:
                self.snapshots.insert(snapshot.model_dump(mode="json"))
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to write merkle root {root_id}: {e}") from e
        return root_id

    def get_by_id(self, root_id: str) -> Optional[MerkleSnapshot]:
        with self._lock:
            doc = self._find(root_id)
        return None if doc is None else self._parse(doc)

    def get_latest_active(self) -> Optional[MerkleSnapshot]:
        """Most recently created snapshot with an active root, later inserts win ties"""
        with self._lock:
            try:
                docs = self.snapshots.search(
                    where("merkleRoot")["status"] == RootStatus.ACTIVE.value
                )
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to read merkle roots: {e}") from e

        snapshots = [(self._parse(d), d.doc_id) for d in docs]
        if not snapshots:
            return None
        latest, _ = max(snapshots, key=lambda s: (s[0].merkleRoot.createdAt, s[1]))
        return latest

    def list_roots(self, limit: int = 50, offset: int = 0) -> list[MerkleRoot]:
        with self._lock:
            docs = self._all()

        roots = [(self._parse(d).merkleRoot, d.doc_id) for d in docs]
        roots.sort(key=lambda r: (r[0].createdAt, r[1]), reverse=True)
        return [r for r, _ in roots[offset : offset + limit]]

    def update_status(
        self,
        root_id: str,
        status: Union[RootStatus, str],
        submitted_at: Optional[datetime] = None,
        valid_at: Optional[datetime] = None,
    ) -> MerkleRoot:
        """
        Any transition is accepted as long as the root exists.
        `updatedAt` always moves, the other timestamps only when given.
        """
        try:
            new_status = RootStatus(status)
        except ValueError as e:
            raise RewardValidationError(f"Unknown root status {status!r}") from e

        with self._lock:
            doc = self._find(root_id)
            if doc is None:
                raise NotFoundError(f"Merkle root {root_id} not found")

            changes: dict = {
                "status": new_status,
                "updatedAt": datetime.now(timezone.utc),
            }
            if submitted_at is not None:
                changes["submittedAt"] = submitted_at
            if valid_at is not None:
                changes["validAt"] = valid_at

            root = self._parse(doc).merkleRoot.model_copy(update=changes)
            try:
                self.snapshots.update(
                    {"merkleRoot": root.model_dump(mode="json")}, doc_ids=[doc.doc_id]
                )
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to update merkle root {root_id}: {e}") from e
        return root
