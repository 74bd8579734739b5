"""
Content store capability surface.

The orchestrator depends only on ``find``/``create``/``update`` over named
collections plus connection lifecycle. Implementations must be safe for
concurrent use from many tasks; the orchestrator caps in-flight calls but
does not serialize them.
"""

from typing import Any, Dict, List, Protocol, runtime_checkable

Record = Dict[str, Any]


@runtime_checkable
class ContentStore(Protocol):
    """Collection-oriented document store."""

    async def connect(self) -> None:
        """Open the connection; raise ContentStoreError when unreachable."""
        ...

    async def close(self) -> None:
        ...

    async def find(self, collection: str, where: Dict[str, Any]) -> List[Record]:
        """Return records whose fields equal every key/value in ``where``."""
        ...

    async def create(self, collection: str, data: Record) -> Record:
        """Insert a record and return it with its store-assigned ``id``."""
        ...

    async def update(self, collection: str, record_id: Any, data: Record) -> Record:
        ...
