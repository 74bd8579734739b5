"""
Base Listing Transformer.

Shared machinery for the event and profile transformers. Transformers are
pure: given the same listing, maps and clock they return the same record,
and they never touch the filesystem or the content store.

Each concrete transformer:
1. Narrows the decoded listing to the kind it handles (fails fast otherwise)
2. Builds a snake_case draft of the store record
3. Renames keys through the FieldMapper table
4. Adds the fields whose keys must not be renamed (description, listingData)
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Optional

from fedsync_import.configs.config import Config
from fedsync_import.errors import TransformationError, ValidationError
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.normalization.field_mapper import (
    FieldMapper,
    create_field_mapper_from_config,
)
from fedsync_import.ingestion.normalization.normalizers import (
    build_rich_text,
    clean_email,
    extract_description,
    listing_category_ids,
    to_location,
)
from fedsync_import.schemas.listing import Listing, decode_listing

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class BaseListingTransformer(ABC):
    """Abstract base for listing transformers."""

    def __init__(
        self,
        category_map: Optional[CategoryMap] = None,
        field_mapper: Optional[FieldMapper] = None,
        clock: Clock = _utc_now,
        max_description_length: Optional[int] = None,
    ):
        """
        Initialize the transformer.

        Args:
            category_map: Read-only category ID -> name lookup
            field_mapper: Key renamer; defaults to the packaged import.yaml table
            clock: Source of the syncedAt/publishedAt timestamp
            max_description_length: Truncate description text beyond this
        """
        self.category_map = category_map if category_map is not None else CategoryMap.empty()
        self.field_mapper = field_mapper or create_field_mapper_from_config()
        self.clock = clock
        self.max_description_length = max_description_length

    # ========================================================================
    # ABSTRACT METHODS
    # ========================================================================

    @abstractmethod
    def transform(self, listing: Listing | Dict[str, Any]) -> Dict[str, Any]:
        """
        Transform one decoded listing (or raw record) into a store record.

        Raises:
            ValidationError: raw input does not match its source schema
            TransformationError: listing is of the wrong kind or unusable
        """

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _decode(self, listing: Listing | Dict[str, Any]) -> Listing:
        if not isinstance(listing, dict):
            return listing
        result = decode_listing(listing)
        if not result.valid:
            raise ValidationError(
                f"Source record failed validation: {'; '.join(result.messages)}",
                issues=result.issues,
            )
        return result.value

    @staticmethod
    def _external_id(source: Any) -> Any:
        external_id = source.external_id if source.external_id is not None else source.id
        if external_id is None or external_id == "":
            raise TransformationError(
                f"Listing {source.name!r} has neither external_id nor id",
                details={"name": source.name},
            )
        return external_id

    def _rename(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return self.field_mapper.transform_keys(draft)

    @staticmethod
    def _address(source: Any) -> Dict[str, str]:
        a = source.address
        return {
            "line_1": a.line_1 or "",
            "line_2": a.line_2 or "",
            "city": a.city or "",
            "state": a.state or "",
            "postcode": a.postcode or "",
        }

    @staticmethod
    def _emails(source: Any) -> Dict[str, str]:
        return {
            "business": clean_email(source.email_addresses.business),
            "booking": clean_email(source.email_addresses.booking),
        }

    @staticmethod
    def _phones(source: Any) -> Dict[str, str]:
        p = source.phone_numbers
        return {
            "local": p.local or "",
            "alt": p.alt or "",
            "fax": p.fax or "",
            "free_us": p.free_us or "",
            "free_world": p.free_world or "",
        }

    def _categories(self, source: Any) -> list:
        return self.category_map.resolve(
            listing_category_ids(source.categories, source.products)
        )

    def _optional_fields(self, source: Any, record: Dict[str, Any]) -> None:
        """Add description and location only when the source has them."""
        text = extract_description(source.products)
        if text:
            record["description"] = build_rich_text(text, self.max_description_length)
        location = to_location(source.latitude, source.longitude)
        if location is not None:
            record["location"] = location

    def _metadata(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        now = self.clock().isoformat()
        return {
            "listingData": self.field_mapper.strip_skipped(raw),
            "syncedAt": now,
            "syncSource": Config.sync_source(),
            "status": Config.default_status(),
            "publishedAt": now,
        }
