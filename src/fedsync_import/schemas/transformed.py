# src/fedsync_import/schemas/transformed.py
"""
Transformed schemas: the exact shapes the content store accepts.

Unlike the source schemas these are strict. Unknown keys are rejected so a
transformer bug surfaces as a validation failure instead of a silently
stored field. Keys are camelCase on the wire; models use snake_case
attributes with camelCase aliases.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StrictModel(BaseModel):
    """Base for store records: camelCase aliases, unknown keys rejected."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# RICH TEXT
# ============================================================================


class RichTextText(_StrictModel):
    type: Literal["text"] = "text"
    format: int = 0
    text: str
    mode: str = "normal"
    style: str = ""
    detail: int = 0
    version: int = 1


class RichTextParagraph(_StrictModel):
    type: Literal["paragraph"] = "paragraph"
    format: str = ""
    indent: int = 0
    version: int = 1
    children: List[RichTextText]
    direction: str = "ltr"


class RichTextRoot(_StrictModel):
    type: Literal["root"] = "root"
    format: str = ""
    indent: int = 0
    version: int = 1
    children: List[RichTextParagraph]
    direction: str = "ltr"


class RichTextDocument(_StrictModel):
    root: RichTextRoot


# ============================================================================
# CATEGORIES
# ============================================================================


class TransformedCategory(_StrictModel):
    title: str = Field(..., min_length=1)
    type: str
    external_id: str = Field(..., pattern=r"^(group|cat)-.+$")
    is_group: Optional[bool] = None
    group_name: Optional[str] = None
    parent: Optional[Union[str, int]] = None


# ============================================================================
# SHARED LISTING PARTS
# ============================================================================


class Address(_StrictModel):
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""


class EmailAddresses(_StrictModel):
    business: str = ""
    booking: str = ""


class PhoneNumbers(_StrictModel):
    local: str = ""
    alt: str = ""
    fax: str = ""
    free_us: str = Field("", alias="freeUS")
    free_world: str = ""


class EventWebsites(_StrictModel):
    business: str = ""
    booking: str = ""


class ProfileWebsites(EventWebsites):
    meetings: str = ""
    mobile: str = ""


class EventSocials(_StrictModel):
    facebook: str = ""
    twitter: str = ""
    instagram: str = ""
    youtube: str = ""
    pinterest: str = ""


class ProfileSocials(EventSocials):
    tripadvisor: str = ""


class _TransformedListing(_StrictModel):
    title: str = Field(..., min_length=1)
    external_id: Union[int, str]
    tracking_id: str = ""
    description: Optional[RichTextDocument] = None
    # [longitude, latitude]
    location: Optional[Tuple[float, float]] = None
    address: Address
    categories: List[str] = Field(default_factory=list)
    listing_data: Optional[Dict[str, Any]] = None
    synced_at: str
    sync_source: str
    status: Literal["published", "draft"]
    published_at: str


# ============================================================================
# EVENTS
# ============================================================================


class TransformedEventDate(_StrictModel):
    name: str = ""
    start_date: str
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    all_day: bool
    times_text: str = ""


class TransformedEvent(_TransformedListing):
    venue_name: Optional[str] = None
    event_dates: List[TransformedEventDate] = Field(..., min_length=1)
    email_addresses: EmailAddresses
    phone_numbers: PhoneNumbers
    websites: EventWebsites
    socials: EventSocials


# ============================================================================
# PROFILES
# ============================================================================


class ProfileHours(_StrictModel):
    day: str
    open: str = ""
    close: str = ""


class ProfileRate(_StrictModel):
    type: str
    amount: Union[str, int, float]
    description: str = ""


class RoomsInfo(_StrictModel):
    num_of_rooms: int
    num_of_suites: Optional[int] = None


class MeetingFacilities(_StrictModel):
    total_sq_ft: Union[int, float]
    num_mtg_rooms: Optional[int] = None
    largest_room: Optional[Union[int, float]] = None
    ceiling_ht: Optional[Union[int, float]] = None


class TransformedProfile(_TransformedListing):
    sort_name: str = ""
    type: str
    email_addresses: EmailAddresses
    phone_numbers: PhoneNumbers
    websites: ProfileWebsites
    socials: ProfileSocials
    hours: List[ProfileHours] = Field(default_factory=list)
    hours_text: str = ""
    photos: List[Any] = Field(default_factory=list)
    rates: List[ProfileRate] = Field(default_factory=list)
    cities_served: List[Any] = Field(default_factory=list)
    meeting_facilities: Optional[MeetingFacilities] = None
    rooms_info: Optional[RoomsInfo] = None
    amenities: List[str] = Field(default_factory=list)
