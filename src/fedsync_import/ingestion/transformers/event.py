"""
Event Transformer.

Transforms a FedSync event listing into the content store's event shape.
"""

from typing import Any, Dict

from fedsync_import.errors import TransformationError
from fedsync_import.ingestion.transformers.base import BaseListingTransformer
from fedsync_import.schemas.listing import EventListing, Listing
from fedsync_import.schemas.source import SourceEvent, SourceEventDate


class EventTransformer(BaseListingTransformer):
    """Transforms ``type: "event"`` listings; anything else is rejected."""

    def transform(self, listing: Listing | Dict[str, Any]) -> Dict[str, Any]:
        listing = self._decode(listing)
        if not isinstance(listing, EventListing):
            raise TransformationError(
                f"Expected an event listing, got {listing.kind.value}"
                + (
                    f" (type={listing.type_tag!r})"
                    if getattr(listing, "type_tag", None)
                    else ""
                ),
                details={"kind": listing.kind.value},
            )

        source: SourceEvent = listing.source
        draft: Dict[str, Any] = {
            "title": source.name.strip(),
            "external_id": self._external_id(source),
            "tracking_id": source.tracking_id or "",
            "address": self._address(source),
            "event_dates": [self._event_date(d) for d in source.event_dates],
            "email_addresses": self._emails(source),
            "phone_numbers": self._phones(source),
            "websites": {
                "business": source.websites.business or "",
                "booking": source.websites.booking or "",
            },
            "socials": {
                "facebook": source.socials.facebook or "",
                "twitter": source.socials.twitter or "",
                "instagram": source.socials.instagram or "",
                "youtube": source.socials.youtube or "",
                "pinterest": source.socials.pinterest or "",
            },
            "categories": self._categories(source),
        }
        if source.venue_name:
            draft["venue_name"] = source.venue_name

        record = self._rename(draft)
        self._optional_fields(source, record)
        record.update(self._metadata(listing.raw or source.model_dump()))
        return record

    @staticmethod
    def _event_date(date: SourceEventDate) -> Dict[str, Any]:
        return {
            "name": date.name or "",
            "start_date": date.start_date,
            "end_date": date.end_date,
            "start_time": date.start_time,
            "end_time": date.end_time,
            "all_day": bool(date.all_day),
            "times_text": date.times_text or "",
        }
