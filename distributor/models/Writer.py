import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from distributor.models.Merkle import MerkleSnapshot


@dataclass
class Writer:
    """Exports a snapshot as CSV and JSON reports, under `{base}/{root id}`"""

    snapshot: MerkleSnapshot
    base: str = "reports"

    @property
    def path(self) -> str:
        return f"{self.base}/{self.snapshot.merkleRoot.id}"

    @property
    def csv_path(self) -> str:
        return f"{self.path}/csv"

    @property
    def json_path(self) -> str:
        return f"{self.path}/json"

    @staticmethod
    def flatten_json(y: Any, prefix: str = "") -> dict[str, Any]:
        """Flatten nested dicts and lists into a single level, joining keys with `_`"""
        out: dict[str, Any] = {}
        if isinstance(y, dict):
            items = [(str(k), v) for k, v in y.items()]
        elif isinstance(y, list):
            items = [(str(i), v) for i, v in enumerate(y)]
        else:
            return {prefix: y}

        for key, value in items:
            out.update(Writer.flatten_json(value, f"{prefix}_{key}" if prefix else key))
        return out

    @staticmethod
    def write_csv(data: list[dict[str, Any]], path: str, fieldnames: list[str]) -> None:
        with open(path, "w+", newline="") as f:
            writer = csv.DictWriter(
                f, delimiter=",", fieldnames=fieldnames, extrasaction="ignore"
            )
            writer.writeheader()
            writer.writerows(data)

    # csv/ and json/ live side by side under the root id
    def _create_dir(self) -> None:
        Path(self.csv_path).mkdir(parents=True, exist_ok=True)
        Path(self.json_path).mkdir(parents=True, exist_ok=True)

    def to_csv(self, data: list[dict[str, Any]], name: str, fieldnames: list[str]) -> None:
        self._create_dir()
        self.write_csv(data, f"{self.csv_path}/{name}.csv", fieldnames)

    def to_json(self, data: Any, name: str) -> None:
        self._create_dir()
        with open(f"{self.json_path}/{name}.json", "w") as f:
            json.dump(data, f, indent=4)

    def write_claims(self) -> None:
        """Claims keep their proof as a JSON encoded column in the CSV"""
        claims = [e.model_dump(mode="json") for e in self.snapshot.entries]
        self.to_json(claims, "claims")

        rows = [{**c, "proof": json.dumps(c["proof"])} for c in claims]
        self.to_csv(rows, "claims", list(rows[0].keys()) if rows else [])

    def write_summary(self) -> None:
        summary = self.snapshot.merkleRoot.model_dump(mode="json")
        self.to_json(summary, "summary")

        flat = self.flatten_json(summary)
        self.to_csv([flat], "summary", list(flat.keys()))

    def write_all(self) -> None:
        self.write_claims()
        self.write_summary()
