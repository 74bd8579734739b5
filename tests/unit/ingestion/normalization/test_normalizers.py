"""
Unit tests for the normalizers module.

Tests for contact cleanup, geo pairs, descriptions and reference IDs.
"""

import pytest

from fedsync_import.ingestion.normalization.normalizers import (
    build_rich_text,
    clean_email,
    extract_description,
    listing_category_ids,
    normalize_day_name,
    reference_ids,
    to_location,
)


class TestCleanEmail:
    """Tests for clean_email."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("a@b.com", "a@b.com"),
            ("  a@b.com  ", "a@b.com"),
            ("\u200ba@b.com", "a@b.com"),
            ("a@\u00adb.com\ufeff", "a@b.com"),
            (None, ""),
            ("", ""),
        ],
    )
    def test_cleanup(self, raw, expected):
        """Should strip invisible characters and whitespace."""
        assert clean_email(raw) == expected


class TestToLocation:
    """Tests for to_location."""

    def test_order(self):
        """Should return [longitude, latitude]."""
        assert to_location(40.0, -3.5) == [-3.5, 40.0]

    def test_zero_coordinates_kept(self):
        """Should treat 0.0 as a real coordinate."""
        assert to_location(0.0, 0.0) == [0.0, 0.0]

    @pytest.mark.parametrize("lat,lng", [(None, 1.0), (1.0, None), (None, None)])
    def test_partial(self, lat, lng):
        """Should return None for a partial pair."""
        assert to_location(lat, lng) is None


class TestNormalizeDayName:
    """Tests for normalize_day_name."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("mon", "Monday"), ("TUE", "Tuesday"), ("Wednesday", "Wednesday"), ("sun", "Sunday")],
    )
    def test_known(self, raw, expected):
        """Should expand to full day names."""
        assert normalize_day_name(raw) == expected

    def test_unknown_passthrough(self):
        """Should pass unknown values through."""
        assert normalize_day_name("holiday") == "holiday"
        assert normalize_day_name(None) == ""


class TestDescriptions:
    """Tests for extract_description and build_rich_text."""

    def test_first_product_only(self):
        """Should read only the first product."""
        products = [{"description": {"text": ""}}, {"description": {"text": "Second"}}]
        assert extract_description(products) is None

    def test_text_kept_verbatim(self):
        """Should return the text unchanged, surrounding whitespace included."""
        assert extract_description([{"description": {"text": "  Hi\n"}}]) == "  Hi\n"

    def test_blank_text(self):
        """Should treat whitespace-only text as missing."""
        assert extract_description([{"description": {"text": " \n\t"}}]) is None

    def test_no_products(self):
        """Should return None without products."""
        assert extract_description([]) is None
        assert extract_description(None) is None

    def test_rich_text_structure(self):
        """Should nest text under root and paragraph nodes."""
        doc = build_rich_text("Hello")
        root = doc["root"]
        assert root["type"] == "root"
        assert root["children"][0]["type"] == "paragraph"
        assert root["children"][0]["children"][0] == {
            "type": "text",
            "format": 0,
            "text": "Hello",
            "mode": "normal",
            "style": "",
            "detail": 0,
            "version": 1,
        }


class TestReferenceIds:
    """Tests for reference_ids and listing_category_ids."""

    def test_mixed_references(self):
        """Should accept ints, numeric strings and objects."""
        refs = [1, "2", {"category_id": 3}, {"amenity_id": "4"}, {"id": 5}, {"x": 6}, "abc", True]
        assert reference_ids(refs) == [1, 2, 3, 4, 5]

    def test_listing_and_first_product(self):
        """Should append the first product's categories."""
        products = [{"categories": [{"category_id": 7}]}, {"categories": [8]}]
        assert listing_category_ids([1], products) == [1, 7]
