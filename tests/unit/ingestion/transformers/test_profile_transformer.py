"""
Unit tests for the profile transformer.

Tests for accepted type tags, amenity resolution and profile extras.
"""

import pytest

from fedsync_import.errors import TransformationError
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.transformers import ProfileTransformer
from fedsync_import.schemas.validation import validate_transformed_profile

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def amenity_map():
    return CategoryMap({1: "WiFi", 2: "Parking"})


@pytest.fixture
def transformer(category_map, amenity_map, fixed_clock):
    return ProfileTransformer(
        category_map=category_map, amenity_map=amenity_map, clock=fixed_clock
    )


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestProfileTypes:
    """Tests for profile type tag handling."""

    def test_listing_type_accepted(self, transformer, create_raw_profile):
        """Should accept type 'listing' as a profile."""
        record = transformer.transform(create_raw_profile(type="listing"))
        assert record["type"] == "listing"
        assert validate_transformed_profile(record).valid

    @pytest.mark.parametrize(
        "type_tag", ["profile", "accommodation", "restaurant", "attraction", "service"]
    )
    def test_other_profile_types_accepted(self, transformer, create_raw_profile, type_tag):
        """Should accept every configured profile subtype."""
        assert transformer.transform(create_raw_profile(type=type_tag))["type"] == type_tag

    def test_event_rejected(self, transformer, create_raw_event):
        """Should refuse an event listing."""
        with pytest.raises(TransformationError):
            transformer.transform(create_raw_event())


class TestAmenities:
    """Tests for amenity resolution."""

    def test_unknown_amenity_dropped(self, transformer, create_raw_profile):
        """Should resolve [1, 999] to ['WiFi'] without error."""
        record = transformer.transform(create_raw_profile(amenities=[1, 999]))
        assert record["amenities"] == ["WiFi"]

    def test_amenity_objects(self, transformer, create_raw_profile):
        """Should accept amenity objects carrying amenity_id."""
        raw = create_raw_profile(amenities=[{"amenity_id": 2}, {"amenity_id": 1}])
        assert transformer.transform(raw)["amenities"] == ["Parking", "WiFi"]

    def test_no_amenity_map(self, category_map, fixed_clock, create_raw_profile):
        """Should yield no amenities without a map."""
        transformer = ProfileTransformer(category_map=category_map, clock=fixed_clock)
        assert transformer.transform(create_raw_profile())["amenities"] == []


class TestProfileFields:
    """Tests for profile-specific fields."""

    def test_sort_name_and_categories(self, transformer, create_raw_profile):
        """Should map name_sort and resolve listing plus product categories."""
        record = transformer.transform(create_raw_profile())
        assert record["sortName"] == "Riverside Hotel"
        assert record["categories"] == ["Museums", "Galleries"]

    def test_hours_day_names_expanded(self, transformer, create_raw_profile):
        """Should expand abbreviated day names."""
        record = transformer.transform(create_raw_profile())
        assert record["hours"] == [{"day": "Monday", "open": "09:00", "close": "17:00"}]

    def test_rates_mapped(self, transformer, create_raw_profile):
        """Should map rate name/value to type/amount."""
        record = transformer.transform(create_raw_profile())
        assert record["rates"] == [
            {"type": "Standard", "amount": "120", "description": "Standard"}
        ]

    def test_meeting_facilities_only_with_area(self, transformer, create_raw_profile):
        """Should emit meetingFacilities only when total_sq_ft is set."""
        assert "meetingFacilities" not in transformer.transform(create_raw_profile())
        raw = create_raw_profile(
            meeting_facilities={"total_sq_ft": 5000, "num_mtg_rooms": 4, "ceiling_ht": 12}
        )
        record = transformer.transform(raw)
        assert record["meetingFacilities"] == {
            "totalSqFt": 5000,
            "numMtgRooms": 4,
            "largestRoom": None,
            "ceilingHt": 12,
        }

    def test_rooms_info_only_with_rooms(self, transformer, create_raw_profile):
        """Should emit roomsInfo only when num_of_rooms is set."""
        assert "roomsInfo" not in transformer.transform(create_raw_profile())
        record = transformer.transform(create_raw_profile(num_of_rooms=80, num_of_suites=6))
        assert record["roomsInfo"] == {"numOfRooms": 80, "numOfSuites": 6}

    def test_description_from_product(self, transformer, create_raw_profile):
        """Should take the description from the first product."""
        record = transformer.transform(create_raw_profile())
        text = record["description"]["root"]["children"][0]["children"][0]["text"]
        assert text == "A quiet hotel by the river."

    def test_output_validates(self, transformer, create_raw_profile):
        """Should produce records that pass the transformed profile schema."""
        raw = create_raw_profile(
            meeting_facilities={"total_sq_ft": 1200},
            num_of_rooms=10,
            cities_served=["Springfield"],
            photos=[{"url": "https://example.com/a.jpg"}],
        )
        result = validate_transformed_profile(transformer.transform(raw))
        assert result.valid, result.messages
