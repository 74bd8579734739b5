"""
Profile Transformer.

Transforms FedSync business profiles (listing, accommodation, restaurant,
attraction, activity, shopping, service, profile) into the store's profile
shape. The feed tags most profiles as ``"listing"`` rather than
``"profile"``; both are accepted.
"""

from typing import Any, Dict, List, Optional

from fedsync_import.errors import TransformationError
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.normalization.normalizers import normalize_day_name
from fedsync_import.ingestion.transformers.base import BaseListingTransformer
from fedsync_import.schemas.listing import Listing, ProfileListing
from fedsync_import.schemas.source import SourceProfile


class ProfileTransformer(BaseListingTransformer):
    """Transforms profile listings, resolving categories and amenities."""

    def __init__(
        self,
        category_map: Optional[CategoryMap] = None,
        amenity_map: Optional[CategoryMap] = None,
        **kwargs: Any,
    ):
        super().__init__(category_map=category_map, **kwargs)
        self.amenity_map = amenity_map if amenity_map is not None else CategoryMap.empty()

    def transform(self, listing: Listing | Dict[str, Any]) -> Dict[str, Any]:
        listing = self._decode(listing)
        if not isinstance(listing, ProfileListing):
            raise TransformationError(
                f"Expected a profile listing, got {listing.kind.value}",
                details={"kind": listing.kind.value},
            )

        source: SourceProfile = listing.source
        draft: Dict[str, Any] = {
            "title": source.name.strip(),
            "name_sort": source.name_sort or "",
            "external_id": self._external_id(source),
            "tracking_id": source.tracking_id or "",
            "type": source.type,
            "address": self._address(source),
            "email_addresses": self._emails(source),
            "phone_numbers": self._phones(source),
            "websites": {
                "business": source.websites.business or "",
                "booking": source.websites.booking or "",
                "meetings": source.websites.meetings or "",
                "mobile": source.websites.mobile or "",
            },
            "socials": {
                "facebook": source.socials.facebook or "",
                "twitter": source.socials.twitter or "",
                "instagram": source.socials.instagram or "",
                "youtube": source.socials.youtube or "",
                "pinterest": source.socials.pinterest or "",
                "tripadvisor": source.socials.tripadvisor or "",
            },
            "hours": [
                {
                    "day": normalize_day_name(h.dayOfWeek),
                    "open": h.openAt or "",
                    "close": h.closeAt or "",
                }
                for h in source.hours
            ],
            "hours_text": source.hours_text or "",
            "photos": list(source.photos),
            "rates": [
                {"type": r.name, "amount": r.value, "description": r.name}
                for r in source.rates
            ],
            "cities_served": list(source.cities_served),
            "categories": self._categories(source),
            "amenities": self._amenities(source),
        }

        facilities = source.meeting_facilities
        if facilities is not None and facilities.total_sq_ft:
            draft["meeting_facilities"] = {
                "total_sq_ft": facilities.total_sq_ft,
                "num_mtg_rooms": facilities.num_mtg_rooms,
                "largest_room": facilities.largest_room,
                "ceiling_ht": facilities.ceiling_ht,
            }
        if source.num_of_rooms:
            draft["rooms_info"] = {
                "num_of_rooms": source.num_of_rooms,
                "num_of_suites": source.num_of_suites,
            }

        record = self._rename(draft)
        self._optional_fields(source, record)
        record.update(self._metadata(listing.raw or source.model_dump()))
        return record

    def _amenities(self, source: SourceProfile) -> List[str]:
        return self.amenity_map.resolve(source.amenities)
