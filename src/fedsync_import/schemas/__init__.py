"""Source and transformed record schemas plus their validators."""

from fedsync_import.schemas.listing import (
    CategoryListing,
    EventListing,
    Listing,
    ListingKind,
    ProfileListing,
    UnknownListing,
    classify,
    decode_listing,
)
from fedsync_import.schemas.validation import (
    FieldIssue,
    ValidationResult,
    validate_model,
    validate_source_category,
    validate_source_event,
    validate_source_group,
    validate_source_profile,
    validate_transformed_category,
    validate_transformed_event,
    validate_transformed_profile,
)

__all__ = [
    "CategoryListing",
    "EventListing",
    "FieldIssue",
    "Listing",
    "ListingKind",
    "ProfileListing",
    "UnknownListing",
    "ValidationResult",
    "classify",
    "decode_listing",
    "validate_model",
    "validate_source_category",
    "validate_source_event",
    "validate_source_group",
    "validate_source_profile",
    "validate_transformed_category",
    "validate_transformed_event",
    "validate_transformed_profile",
]
