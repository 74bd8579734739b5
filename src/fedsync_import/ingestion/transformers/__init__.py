"""
Listing transformers.

Pure functions from one external record to one normalized store record.
:class:`TransformerSet` bundles the transformers for a run (they share the
same read-only category map) and dispatches a decoded listing to the right
one with an exhaustive match over the listing kinds.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, assert_never

from fedsync_import.errors import TransformationError
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.transformers.category import (
    CategoryTransformer,
    CategoryTree,
    LeafCategory,
    parse_categories_file,
    transform_categories_file,
    transform_category,
    transform_category_group,
)
from fedsync_import.ingestion.transformers.event import EventTransformer
from fedsync_import.ingestion.transformers.profile import ProfileTransformer
from fedsync_import.schemas.listing import (
    CategoryListing,
    EventListing,
    Listing,
    ProfileListing,
    UnknownListing,
)


@dataclass(frozen=True)
class TransformerSet:
    """The event and profile transformers of one run."""

    events: EventTransformer
    profiles: ProfileTransformer

    @classmethod
    def build(
        cls,
        category_map: CategoryMap,
        amenity_map: Optional[CategoryMap] = None,
        **kwargs: Any,
    ) -> "TransformerSet":
        return cls(
            events=EventTransformer(category_map=category_map, **kwargs),
            profiles=ProfileTransformer(
                category_map=category_map, amenity_map=amenity_map, **kwargs
            ),
        )

    def transform(self, listing: Listing) -> Dict[str, Any]:
        """Route a decoded listing to its transformer."""
        match listing:
            case EventListing():
                return self.events.transform(listing)
            case ProfileListing():
                return self.profiles.transform(listing)
            case CategoryListing():
                raise TransformationError(
                    "Category groups are transformed in the category phase",
                    details={"kind": listing.kind.value},
                )
            case UnknownListing():
                raise TransformationError(
                    f"Unsupported listing type {listing.type_tag!r}",
                    details={"kind": listing.kind.value, "type": listing.type_tag},
                )
            case _:
                assert_never(listing)


__all__ = [
    "CategoryTransformer",
    "CategoryTree",
    "EventTransformer",
    "LeafCategory",
    "ProfileTransformer",
    "TransformerSet",
    "parse_categories_file",
    "transform_categories_file",
    "transform_category",
    "transform_category_group",
]
