# ingestion/store.py
import hashlib
import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


@dataclass
class LoadStats:
    """Per-job tally. Every job ends by logging one of these."""
    loaded: int = 0
    skipped: int = 0
    errors: int = 0

    def add(self, counts: Mapping[str, int]) -> "LoadStats":
        self.loaded += int(counts.get("loaded", 0))
        self.skipped += int(counts.get("skipped", 0))
        self.errors += int(counts.get("errors", 0))
        return self

    def merge(self, other: "LoadStats") -> "LoadStats":
        return self.add(asdict(other))

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def __str__(self) -> str:
        return f"loaded={self.loaded} skipped={self.skipped} errors={self.errors}"


def content_id(table: str, row: Mapping[str, Any]) -> str:
    """Deterministic _id for a tabular row, so re-imports hit the unique _id index."""
    blob = table + "|" + json.dumps(dict(row), sort_keys=True, default=str, ensure_ascii=False)
    return "sha256:" + hashlib.sha256(blob.encode("utf-8")).hexdigest()
