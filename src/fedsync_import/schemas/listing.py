"""
Closed set of listing kinds, decoded once at the validation boundary.

The FedSync feed discriminates records with a free-form ``type`` string.
:func:`decode_listing` turns a raw record into exactly one of
:class:`CategoryListing`, :class:`EventListing`, :class:`ProfileListing` or
:class:`UnknownListing`; everything downstream matches on these classes
instead of comparing strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from fedsync_import.configs.config import Config
from fedsync_import.schemas.source import SourceCategoryGroup, SourceEvent, SourceProfile
from fedsync_import.schemas.validation import (
    FieldIssue,
    ValidationResult,
    validate_source_event,
    validate_source_group,
    validate_source_profile,
)


class ListingKind(str, Enum):
    """Kinds of record the importer understands."""

    CATEGORY = "category"
    EVENT = "event"
    PROFILE = "profile"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CategoryListing:
    """A category group together with its nested leaves."""

    group: SourceCategoryGroup
    kind: ListingKind = field(default=ListingKind.CATEGORY, init=False)


@dataclass(frozen=True)
class EventListing:
    source: SourceEvent
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
    kind: ListingKind = field(default=ListingKind.EVENT, init=False)


@dataclass(frozen=True)
class ProfileListing:
    source: SourceProfile
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
    kind: ListingKind = field(default=ListingKind.PROFILE, init=False)


@dataclass(frozen=True)
class UnknownListing:
    """A record whose ``type`` tag is not handled (deals, typos, new kinds)."""

    type_tag: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
    kind: ListingKind = field(default=ListingKind.UNKNOWN, init=False)

    @property
    def ignored(self) -> bool:
        """True for kinds the feed sends but the importer skips on purpose."""
        return self.type_tag in Config.ignored_types()


Listing = Union[CategoryListing, EventListing, ProfileListing, UnknownListing]


def classify(raw: Any) -> ListingKind:
    """Map a raw record to its listing kind without validating it."""
    if not isinstance(raw, dict):
        return ListingKind.UNKNOWN
    tag = raw.get("type")
    if tag == "event":
        return ListingKind.EVENT
    if tag in Config.profile_types():
        return ListingKind.PROFILE
    if tag is None and isinstance(raw.get("categories"), list) and "name" in raw:
        return ListingKind.CATEGORY
    if tag == "group":
        return ListingKind.CATEGORY
    return ListingKind.UNKNOWN


def decode_listing(raw: Any) -> ValidationResult[Listing]:
    """
    Classify and validate a raw record in one step.

    Returns:
        A valid result holding the decoded listing, or an invalid result with
        the source-schema issues. Unknown kinds decode successfully to
        :class:`UnknownListing`; rejecting them is the caller's decision.
    """
    if not isinstance(raw, dict):
        return ValidationResult.fail(
            [FieldIssue(loc="", message="Listing must be a JSON object", kind="dict_type")]
        )

    kind = classify(raw)
    if kind is ListingKind.EVENT:
        result = validate_source_event(raw)
        if not result.valid:
            return ValidationResult.fail(result.issues)
        return ValidationResult.ok(EventListing(source=result.value, raw=raw))
    if kind is ListingKind.PROFILE:
        result = validate_source_profile(raw)
        if not result.valid:
            return ValidationResult.fail(result.issues)
        return ValidationResult.ok(ProfileListing(source=result.value, raw=raw))
    if kind is ListingKind.CATEGORY:
        result = validate_source_group(raw)
        if not result.valid:
            return ValidationResult.fail(result.issues)
        return ValidationResult.ok(CategoryListing(group=result.value))
    return ValidationResult.ok(UnknownListing(type_tag=raw.get("type"), raw=raw))
