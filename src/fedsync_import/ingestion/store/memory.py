"""In-memory content store, for tests and local runs without a backend."""

import copy
import itertools
from collections import Counter
from typing import Any, Dict, List, Optional

from fedsync_import.errors import ContentStoreError
from fedsync_import.ingestion.store.base import Record


class InMemoryContentStore:
    """
    Dict-backed store with sequential string ids.

    Operations never await internally, so each one is atomic on the event
    loop. Every call is counted in ``calls`` (keyed by operation name) so tests can
    assert that a dry run never reached ``create`` or ``update``.
    """

    def __init__(
        self,
        collections: Optional[Dict[str, List[Record]]] = None,
        fail_connect: bool = False,
    ):
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._ids = itertools.count(1)
        self.fail_connect = fail_connect
        self.connected = False
        self.calls: Counter = Counter()
        for name, records in (collections or {}).items():
            for record in records:
                self._insert(name, record)

    def _insert(self, collection: str, data: Record) -> Record:
        record = copy.deepcopy(data)
        record.setdefault("id", str(next(self._ids)))
        self._collections.setdefault(collection, {})[str(record["id"])] = record
        return copy.deepcopy(record)

    async def connect(self) -> None:
        self.calls["connect"] += 1
        if self.fail_connect:
            raise ContentStoreError("In-memory store configured to refuse connections")
        self.connected = True

    async def close(self) -> None:
        self.calls["close"] += 1
        self.connected = False

    async def find(self, collection: str, where: Dict[str, Any]) -> List[Record]:
        self.calls["find"] += 1
        records = self._collections.get(collection, {}).values()
        return [
            copy.deepcopy(r)
            for r in records
            if all(r.get(k) == v for k, v in where.items())
        ]

    async def create(self, collection: str, data: Record) -> Record:
        self.calls["create"] += 1
        return self._insert(collection, data)

    async def update(self, collection: str, record_id: Any, data: Record) -> Record:
        self.calls["update"] += 1
        records = self._collections.get(collection, {})
        key = str(record_id)
        if key not in records:
            raise ContentStoreError(
                f"No record {record_id} in {collection}",
                status_code=404,
            )
        merged = {**records[key], **copy.deepcopy(data), "id": records[key]["id"]}
        records[key] = merged
        return copy.deepcopy(merged)

    # Inspection helpers for tests and reports

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def records(self, collection: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    @property
    def mutation_count(self) -> int:
        return self.calls["create"] + self.calls["update"]
