"""Unit tests for TransformerSet dispatch."""

import pytest

from fedsync_import.errors import TransformationError
from fedsync_import.ingestion.transformers import TransformerSet
from fedsync_import.schemas.listing import decode_listing


@pytest.fixture
def transformers(category_map, fixed_clock):
    return TransformerSet.build(category_map, clock=fixed_clock)


class TestTransformerSet:
    """Tests for listing dispatch."""

    def test_routes_event(self, transformers, create_raw_event):
        """Should route event listings to the event transformer."""
        record = transformers.transform(decode_listing(create_raw_event()).value)
        assert "eventDates" in record

    def test_routes_profile(self, transformers, create_raw_profile):
        """Should route profile listings to the profile transformer."""
        record = transformers.transform(decode_listing(create_raw_profile()).value)
        assert record["type"] == "listing"

    def test_unknown_rejected(self, transformers):
        """Should refuse unknown listings."""
        listing = decode_listing({"type": "deal", "name": "Half price"}).value
        with pytest.raises(TransformationError):
            transformers.transform(listing)

    def test_category_group_rejected(self, transformers):
        """Should refuse category groups outside the category phase."""
        listing = decode_listing({"id": 1, "name": "Arts", "categories": []}).value
        with pytest.raises(TransformationError):
            transformers.transform(listing)

    def test_shared_category_map(self, category_map, fixed_clock):
        """Should hand the same map to both transformers."""
        transformers = TransformerSet.build(category_map, clock=fixed_clock)
        assert transformers.events.category_map is category_map
        assert transformers.profiles.category_map is category_map
