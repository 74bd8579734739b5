"""
Category Resolution Map.

An immutable external-ID -> display-name index. It is built once at the end
of the category phase and handed by reference to the event and profile
transformers; nothing can mutate it afterwards, so concurrent tasks share it
without locking. The same type backs the amenity map.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterable, Iterator, List, Optional

from fedsync_import.ingestion.normalization.normalizers import reference_ids
from fedsync_import.schemas.source import SourceCategoryGroup


class CategoryMap(Mapping):
    """Read-only ``{external id: name}`` lookup."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    @classmethod
    def empty(cls) -> "CategoryMap":
        return cls()

    @classmethod
    def from_groups(cls, groups: Iterable[SourceCategoryGroup]) -> "CategoryMap":
        """Index every leaf category of the given groups by its numeric ID."""
        entries = {}
        for group in groups:
            for category in group.categories:
                entries[category.id] = category.name
        return cls(entries)

    def __getitem__(self, key: int) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_entries"):
            raise AttributeError("CategoryMap is immutable")
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        return f"CategoryMap({len(self)} entries)"

    def resolve(self, references: Iterable[Any]) -> List[str]:
        """
        Resolve reference IDs to names.

        Unknown IDs are skipped silently; duplicates are collapsed while
        keeping first-seen order.
        """
        names: List[str] = []
        seen = set()
        for ref_id in reference_ids(references):
            name = self._entries.get(ref_id)
            if name is None or name in seen:
                continue
            seen.add(name)
            names.append(name)
        return names
