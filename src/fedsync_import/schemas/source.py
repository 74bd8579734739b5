# src/fedsync_import/schemas/source.py
"""
Source schemas for raw FedSync feed records.

These models are deliberately permissive: the upstream feed evolves
independently, so unknown keys are accepted and kept. Only the fields the
importer depends on are declared, and only a handful of them are required:

- Category: ``id`` and a non-empty ``name``
- Event: ``name``, at least one ``event_dates`` entry, ``address``
- Profile: ``name``, an accepted ``type`` tag, ``address``
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fedsync_import.configs.config import Config


class _SourceModel(BaseModel):
    """Base for feed records: unknown fields are allowed and preserved."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=False)


def _none_to_empty(v: Any) -> Any:
    return "" if v is None else v


# ============================================================================
# CATEGORIES
# ============================================================================


class SourceCategory(_SourceModel):
    """Leaf category nested inside a group."""

    id: int
    name: str = Field(..., min_length=1)
    type: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class SourceCategoryGroup(_SourceModel):
    """Top-level category group."""

    id: Union[int, str]
    name: str = Field(..., min_length=1)
    categories: List[SourceCategory] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("categories", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ============================================================================
# SHARED LISTING PARTS
# ============================================================================


class SourceAddress(_SourceModel):
    line_1: Optional[str] = ""
    line_2: Optional[str] = ""
    city: Optional[str] = ""
    state: Optional[str] = ""
    postcode: Optional[str] = ""


class SourceEmailAddresses(_SourceModel):
    business: Optional[str] = ""
    booking: Optional[str] = ""


class SourcePhoneNumbers(_SourceModel):
    local: Optional[str] = ""
    alt: Optional[str] = ""
    fax: Optional[str] = ""
    free_us: Optional[str] = ""
    free_world: Optional[str] = ""


class SourceWebsites(_SourceModel):
    business: Optional[str] = ""
    booking: Optional[str] = ""
    meetings: Optional[str] = ""
    mobile: Optional[str] = ""


class SourceSocials(_SourceModel):
    facebook: Optional[str] = ""
    twitter: Optional[str] = ""
    instagram: Optional[str] = ""
    youtube: Optional[str] = ""
    pinterest: Optional[str] = ""
    tripadvisor: Optional[str] = ""
    tiktok: Optional[str] = ""


class _ListingBase(_SourceModel):
    """Fields shared by events and profiles."""

    type: str
    name: str = Field(..., min_length=1)
    address: SourceAddress

    id: Optional[int] = None
    external_id: Optional[Union[int, str]] = None
    tracking_id: Optional[str] = None
    name_sort: Optional[str] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None

    email_addresses: SourceEmailAddresses = Field(default_factory=SourceEmailAddresses)
    phone_numbers: SourcePhoneNumbers = Field(default_factory=SourcePhoneNumbers)
    websites: SourceWebsites = Field(default_factory=SourceWebsites)
    socials: SourceSocials = Field(default_factory=SourceSocials)

    categories: List[Any] = Field(default_factory=list)
    amenities: List[Any] = Field(default_factory=list)
    products: List[Dict[str, Any]] = Field(default_factory=list)
    photos: List[Any] = Field(default_factory=list)

    @field_validator(
        "email_addresses",
        "phone_numbers",
        "websites",
        "socials",
        mode="before",
    )
    @classmethod
    def none_as_empty_object(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("categories", "amenities", "products", "photos", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v


# ============================================================================
# EVENTS
# ============================================================================


class SourceEventDate(_SourceModel):
    """One occurrence window of an event."""

    name: Optional[str] = ""
    start_date: str
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    # Feed sends 0/1 as often as true/false
    all_day: bool = False
    times_text: Optional[str] = ""

    @field_validator("name", "times_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("all_day", mode="before")
    @classmethod
    def coerce_all_day(cls, v: Any) -> Any:
        if v is None:
            return False
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return bool(v)
        return v


class SourceEvent(_ListingBase):
    """A FedSync event listing."""

    event_dates: List[SourceEventDate] = Field(..., min_length=1)
    venue_name: Optional[str] = None


# ============================================================================
# PROFILES
# ============================================================================


class SourceHours(_SourceModel):
    dayOfWeek: str
    openAt: Optional[str] = ""
    closeAt: Optional[str] = ""
    allDay: Optional[bool] = None


class SourceRate(_SourceModel):
    name: str = ""
    value: Union[str, int, float] = ""


class SourceMeetingFacilities(_SourceModel):
    total_sq_ft: Optional[Union[int, float]] = None
    num_mtg_rooms: Optional[int] = None
    largest_room: Optional[Union[int, float]] = None
    ceiling_ht: Optional[Union[int, float]] = None


class SourceProfile(_ListingBase):
    """A FedSync business profile (any accepted profile subtype)."""

    hours: List[SourceHours] = Field(default_factory=list)
    hours_text: Optional[str] = ""
    rates: List[SourceRate] = Field(default_factory=list)
    cities_served: List[Any] = Field(default_factory=list)
    meeting_facilities: Optional[SourceMeetingFacilities] = None
    num_of_rooms: Optional[int] = None
    num_of_suites: Optional[int] = None

    @field_validator("type")
    @classmethod
    def validate_profile_type(cls, v: str) -> str:
        accepted = Config.profile_types()
        if v not in accepted:
            raise ValueError(
                f"Expected one of {sorted(accepted)}, got {v!r}"
            )
        return v

    @field_validator("hours", "rates", "cities_served", mode="before")
    @classmethod
    def none_as_empty_profile_list(cls, v: Any) -> Any:
        return [] if v is None else v
