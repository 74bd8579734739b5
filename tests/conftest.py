"""
Shared pytest fixtures for the FedSync importer test suite.

Provides factories for raw feed records and on-disk data directories.
"""

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from fedsync_import.configs.settings import get_settings
from fedsync_import.ingestion.category_map import CategoryMap

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Keep FEDSYNC_* variables from the developer shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("FEDSYNC_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fixed_clock():
    """Return a clock that always reports FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def create_raw_event():
    """
    Return a function that creates raw FedSync event records.

    All defaults can be overridden via keyword arguments; pass ``None`` to
    remove a key entirely.

    Example:
        raw = create_raw_event(name="Jazz Night", latitude=None)
    """

    def _create_raw_event(external_id: Any = 1001, **kwargs) -> Dict[str, Any]:
        defaults: Dict[str, Any] = {
            "id": external_id,
            "external_id": external_id,
            "tracking_id": f"trk-{external_id}",
            "type": "event",
            "name": "Summer Concert",
            "address": {
                "line_1": "1 Main St",
                "line_2": "",
                "city": "Springfield",
                "state": "IL",
                "postcode": "62701",
            },
            "latitude": 39.78,
            "longitude": -89.65,
            "event_dates": [
                {"start_date": "2024-07-01", "end_date": "2024-07-01", "all_day": 0}
            ],
            "email_addresses": {"business": "info@example.com", "booking": ""},
            "phone_numbers": {"local": "555-0100"},
            "websites": {"business": "https://example.com"},
            "socials": {"facebook": "https://facebook.com/example"},
            "categories": [10],
            "products": [],
        }
        defaults.update(kwargs)
        return {k: v for k, v in defaults.items() if v is not None}

    return _create_raw_event


@pytest.fixture
def create_raw_profile():
    """
    Return a function that creates raw FedSync profile records.

    Defaults to the ``"listing"`` type tag the live feed uses.
    """

    def _create_raw_profile(external_id: Any = 2001, **kwargs) -> Dict[str, Any]:
        defaults: Dict[str, Any] = {
            "id": external_id,
            "external_id": external_id,
            "tracking_id": f"trk-{external_id}",
            "type": "listing",
            "name": "Riverside Hotel",
            "name_sort": "Riverside Hotel",
            "address": {"line_1": "9 River Rd", "city": "Springfield", "state": "IL"},
            "latitude": 39.8,
            "longitude": -89.6,
            "hours": [{"dayOfWeek": "mon", "openAt": "09:00", "closeAt": "17:00"}],
            "rates": [{"name": "Standard", "value": "120"}],
            "amenities": [1],
            "categories": [{"category_id": 10}],
            "products": [
                {
                    "description": {"text": "A quiet hotel by the river."},
                    "categories": [11],
                }
            ],
        }
        defaults.update(kwargs)
        return {k: v for k, v in defaults.items() if v is not None}

    return _create_raw_profile


@pytest.fixture
def categories_document() -> Dict[str, Any]:
    """Return a categories file with two groups and three leaves."""
    return {
        "categories": [
            {
                "id": 1,
                "name": "Arts",
                "categories": [{"id": 10, "name": "Museums"}, {"id": 11, "name": "Galleries"}],
            },
            {"id": 2, "name": "Dining", "categories": [{"id": 20, "name": "Cafes"}]},
        ]
    }


@pytest.fixture
def category_map() -> CategoryMap:
    return CategoryMap({10: "Museums", 11: "Galleries", 20: "Cafes"})


@pytest.fixture
def make_data_dir(tmp_path):
    """
    Return a function that lays out a FedSync data directory on disk.

    Passing ``None`` for a section leaves its directory out entirely.

    Example:
        root = make_data_dir(categories=doc, events=[raw_event], profiles=None)
    """

    def _make_data_dir(
        categories: Optional[Any] = None,
        events: Optional[List[Any]] = None,
        profiles: Optional[List[Any]] = None,
        amenities: Optional[Any] = None,
        root: Optional[Path] = None,
    ) -> Path:
        root = root or tmp_path / "data"
        root.mkdir(parents=True, exist_ok=True)
        if categories is not None:
            (root / "categories").mkdir(exist_ok=True)
            _write(root / "categories" / "categories.json", categories)
        if amenities is not None:
            (root / "amenities").mkdir(exist_ok=True)
            _write(root / "amenities" / "amenities.json", amenities)
        for name, items in (("events", events), ("profiles", profiles)):
            if items is None:
                continue
            directory = root / name
            directory.mkdir(exist_ok=True)
            for index, item in enumerate(items):
                _write(directory / f"{name[:-1]}-{index:03d}.json", item)
        return root

    return _make_data_dir


def _write(path: Path, content: Any) -> None:
    if isinstance(content, str):
        path.write_text(content, encoding="utf-8")
    else:
        path.write_text(json.dumps(content), encoding="utf-8")
