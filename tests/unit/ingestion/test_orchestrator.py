"""
Unit tests for the orchestrator module.

Tests for ImportOrchestrator phases, dry runs, idempotent upserts and
error handling.
"""

import asyncio
import json
from typing import Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from fedsync_import.errors import (
    ContentStoreError,
    FedSyncImportError,
    ImportTimeoutError,
    ValidationError,
)
from fedsync_import.ingestion.options import ImportOptions
from fedsync_import.ingestion.orchestrator import (
    ImportCancelledError,
    ImportOrchestrator,
    ImportState,
    run_import,
)
from fedsync_import.ingestion.store import InMemoryContentStore
from fedsync_import.monitoring.error_aggregator import ErrorAggregator

# =============================================================================
# FIXTURES
# =============================================================================


class SlowFindStore(InMemoryContentStore):
    """In-memory store whose lookups yield to the event loop first."""

    def __init__(self, delay: float = 0.01, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay

    async def find(self, collection, where):
        await asyncio.sleep(self.delay)
        return await super().find(collection, where)


class PeakTrackingStore(InMemoryContentStore):
    """In-memory store that records the most lookups in flight at once, per collection."""

    def __init__(self, delay: float = 0.01, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay
        self.in_flight = 0
        self.peak: Dict[str, int] = {}

    async def find(self, collection, where):
        self.in_flight += 1
        self.peak[collection] = max(self.peak.get(collection, 0), self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await super().find(collection, where)
        finally:
            self.in_flight -= 1


@pytest.fixture
def store():
    return InMemoryContentStore()


@pytest.fixture
def full_data_dir(make_data_dir, categories_document, create_raw_event, create_raw_profile):
    """Data directory with 5 category records, 2 events and 1 profile."""
    return make_data_dir(
        categories=categories_document,
        events=[create_raw_event(1001), create_raw_event(1002, name="Winter Gala")],
        profiles=[create_raw_profile(2001)],
    )


def _run(orchestrator, path, **options):
    return asyncio.run(orchestrator.run_import(path, ImportOptions(**options)))


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestFullImport:
    """Tests for a complete run against the in-memory store."""

    def test_counts(self, store, full_data_dir):
        """Should import every entity and report matching counters."""
        stats = _run(ImportOrchestrator(store), full_data_dir)

        assert stats.categories.as_dict() == {"processed": 5, "imported": 5, "errors": 0}
        assert stats.events.as_dict() == {"processed": 2, "imported": 2, "errors": 0}
        assert stats.profiles.as_dict() == {"processed": 1, "imported": 1, "errors": 0}
        assert store.count("categories") == 5
        assert store.count("events") == 2
        assert store.count("profiles") == 1
        assert stats.end_time is not None

    def test_state_completed(self, store, full_data_dir):
        """Should end in the COMPLETED state."""
        orchestrator = ImportOrchestrator(store)
        _run(orchestrator, full_data_dir)
        assert orchestrator.state is ImportState.COMPLETED
        assert orchestrator.run_id.startswith("import_")

    def test_leaves_link_to_group_ids(self, store, full_data_dir):
        """Should set each leaf's parent to its group's store id."""
        _run(ImportOrchestrator(store), full_data_dir)

        records = {r["externalId"]: r for r in store.records("categories")}
        assert records["cat-10"]["parent"] == records["group-1"]["id"]
        assert records["cat-11"]["parent"] == records["group-1"]["id"]
        assert records["cat-20"]["parent"] == records["group-2"]["id"]
        assert "parent" not in records["group-1"]

    def test_groups_created_before_leaves(self, full_data_dir):
        """Should create every group before any leaf."""
        store = InMemoryContentStore()
        created = []
        original_create = store.create

        async def tracking_create(collection, data):
            if collection == "categories":
                created.append(data["externalId"])
            return await original_create(collection, data)

        store.create = tracking_create
        _run(ImportOrchestrator(store), full_data_dir, batch_size=1)

        first_leaf = min(i for i, ext in enumerate(created) if ext.startswith("cat-"))
        assert all(ext.startswith("group-") for ext in created[:first_leaf])
        assert created[:first_leaf] == ["group-1", "group-2"]

    def test_events_resolve_categories(self, store, full_data_dir):
        """Should resolve listing categories through the fresh category map."""
        _run(ImportOrchestrator(store), full_data_dir)
        event = next(r for r in store.records("events") if r["externalId"] == 1001)
        assert event["categories"] == ["Museums"]

    def test_run_import_helper_closes_store(self, store, full_data_dir):
        """Should close the store after the run."""
        asyncio.run(run_import(store, full_data_dir))
        assert store.calls["close"] == 1


class TestIdempotence:
    """Tests for lookup-then-upsert."""

    def test_second_category_run_updates(self, store, make_data_dir, categories_document):
        """Should leave the record count unchanged on a second run."""
        root = make_data_dir(categories=categories_document)

        _run(ImportOrchestrator(store), root)
        creates_after_first = store.calls["create"]
        _run(ImportOrchestrator(store), root)

        assert store.count("categories") == 5
        assert store.calls["create"] == creates_after_first
        assert store.calls["update"] == 5

    def test_second_event_run_updates(self, store, make_data_dir, create_raw_event):
        """Should update events found by externalId."""
        root = make_data_dir(events=[create_raw_event(7)])
        _run(ImportOrchestrator(store), root)
        _run(ImportOrchestrator(store), root)
        assert store.count("events") == 1
        assert store.calls["update"] == 1

    def test_duplicate_external_ids_serialized(self, make_data_dir, create_raw_event):
        """Should not create duplicates when two files share an externalId."""
        store = SlowFindStore()
        root = make_data_dir(events=[create_raw_event(55), create_raw_event(55, name="Copy")])

        stats = _run(ImportOrchestrator(store), root, concurrency=2)

        assert stats.events.imported == 2
        assert store.count("events") == 1
        assert store.calls["create"] == 1
        assert store.calls["update"] == 1


class TestDryRun:
    """Tests for dry-run mode."""

    def test_no_mutations(self, store, full_data_dir):
        """Should never call create or update."""
        _run(ImportOrchestrator(store), full_data_dir, dry_run=True)
        assert store.mutation_count == 0
        assert store.calls["find"] == 0

    def test_imported_equals_processed(self, store, full_data_dir):
        """Should report imported == processed for every entity type."""
        stats = _run(ImportOrchestrator(store), full_data_dir, dry_run=True)
        for entity in (stats.categories, stats.events, stats.profiles):
            assert entity.processed > 0
            assert entity.imported == entity.processed

    def test_validation_errors_still_reported(self, store, make_data_dir, create_raw_event):
        """Should still record item errors found during a dry run."""
        root = make_data_dir(events=[create_raw_event(), create_raw_event(2, event_dates=[])])
        errors = ErrorAggregator()
        stats = _run(ImportOrchestrator(store, errors=errors), root, dry_run=True)
        assert stats.events.errors == 1
        assert errors.count == 1

    def test_mock_store_never_mutated(self, full_data_dir):
        """Should only call connect on a mocked store."""
        mock_store = MagicMock()
        mock_store.connect = AsyncMock()
        mock_store.find = AsyncMock(return_value=[])
        mock_store.create = AsyncMock()
        mock_store.update = AsyncMock()

        _run(ImportOrchestrator(mock_store), full_data_dir, dry_run=True)

        mock_store.connect.assert_awaited_once()
        mock_store.create.assert_not_called()
        mock_store.update.assert_not_called()


class TestMissingInput:
    """Tests for missing files and directories."""

    def test_missing_events_dir(self, store, make_data_dir, categories_document):
        """Should report zero events without raising."""
        root = make_data_dir(categories=categories_document)
        stats = _run(ImportOrchestrator(store), root)
        assert stats.events.processed == 0
        assert stats.profiles.processed == 0
        assert stats.categories.imported == 5

    def test_missing_categories_file(self, store, make_data_dir, create_raw_event):
        """Should run events with an empty category map."""
        root = make_data_dir(events=[create_raw_event()])
        stats = _run(ImportOrchestrator(store), root)
        assert stats.categories.processed == 0
        assert store.records("events")[0]["categories"] == []

    def test_empty_data_dir(self, store, tmp_path):
        """Should complete with all-zero counters."""
        stats = _run(ImportOrchestrator(store), tmp_path)
        assert stats.total_processed == 0

    def test_events_path_is_a_file(self, store, make_data_dir, categories_document):
        """Should fail the run when events is not a directory."""
        root = make_data_dir(categories=categories_document)
        (root / "events").write_text("", encoding="utf-8")
        orchestrator = ImportOrchestrator(store)
        with pytest.raises(FedSyncImportError):
            _run(orchestrator, root)
        assert orchestrator.state is ImportState.FAILED


class TestItemErrors:
    """Tests for item-level failures."""

    def test_bad_items_do_not_stop_phase(self, store, make_data_dir, create_raw_event):
        """Should count errors and continue with the remaining items."""
        root = make_data_dir(
            events=[
                "{not json",
                create_raw_event(2, event_dates=[]),
                create_raw_event(3),
            ]
        )
        errors = ErrorAggregator()
        stats = _run(ImportOrchestrator(store, errors=errors), root)

        assert stats.events.as_dict() == {"processed": 3, "imported": 1, "errors": 2}
        assert errors.count == 2
        assert {r.phase for r in errors.get_all()} == {"events"}
        assert len(errors.get_by_type("ValidationError")) == 2

    def test_deals_skipped(self, store, make_data_dir, create_raw_event):
        """Should skip deal listings without counting them as errors."""
        root = make_data_dir(
            events=[create_raw_event(1), {"type": "deal", "name": "Half price"}]
        )
        stats = _run(ImportOrchestrator(store), root)
        assert stats.events.as_dict() == {"processed": 2, "imported": 1, "errors": 0}

    def test_wrong_kind_in_events_dir(self, store, make_data_dir, create_raw_profile):
        """Should record a profile found in the events directory as an error."""
        root = make_data_dir(events=[create_raw_profile()])
        errors = ErrorAggregator()
        stats = _run(ImportOrchestrator(store, errors=errors), root)
        assert stats.events.errors == 1
        [record] = errors.get_by_type("TransformationError")
        assert "Expected event listing, got profile" in record.message

    def test_unsupported_type_is_error(self, store, make_data_dir, create_raw_event):
        """Should record listings of an unsupported type as transformation errors."""
        root = make_data_dir(
            profiles=[{"type": "itinerary", "name": "Coast walk"}],
            events=[create_raw_event(1)],
        )
        errors = ErrorAggregator()
        stats = _run(ImportOrchestrator(store, errors=errors), root)
        assert stats.profiles.as_dict() == {"processed": 1, "imported": 0, "errors": 1}
        assert stats.events.imported == 1
        [record] = errors.get_by_phase("profiles")
        assert record.error_type == "TransformationError"
        assert "Unsupported listing type 'itinerary'" in record.message

    def test_store_failure_is_item_error(self, make_data_dir, create_raw_event):
        """Should record a failing create and keep going."""
        store = InMemoryContentStore()
        original_create = store.create

        async def flaky_create(collection, data):
            if data.get("externalId") == 2:
                raise ContentStoreError("rejected", status_code=400)
            return await original_create(collection, data)

        store.create = flaky_create
        root = make_data_dir(events=[create_raw_event(1), create_raw_event(2)])
        errors = ErrorAggregator()

        stats = _run(ImportOrchestrator(store, errors=errors), root)

        assert stats.events.as_dict() == {"processed": 2, "imported": 1, "errors": 1}
        assert errors.get_by_type("ContentStoreError")[0].item == "events/event-001.json"

    def test_item_timeout(self, make_data_dir, create_raw_event):
        """Should record slow store calls as timeouts."""
        store = SlowFindStore(delay=0.5)
        root = make_data_dir(events=[create_raw_event()])
        errors = ErrorAggregator()
        stats = _run(ImportOrchestrator(store, errors=errors), root, item_timeout_s=0.01)
        assert stats.events.errors == 1
        assert errors.get_by_type("ImportTimeoutError")

    def test_title_too_long(self, store, make_data_dir, create_raw_event):
        """Should reject titles above the configured limit."""
        root = make_data_dir(events=[create_raw_event(name="x" * 30)])
        stats = _run(ImportOrchestrator(store), root, max_title_length=20)
        assert stats.events.errors == 1

    def test_error_report_written(self, store, make_data_dir, create_raw_event, tmp_path):
        """Should save the error report when errors occurred."""
        report = tmp_path / "reports" / "errors.json"
        root = make_data_dir(events=["{bad"])
        _run(ImportOrchestrator(store), root, error_report_path=report)
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["summary"]["total"] == 1


class TestCategoryPhaseErrors:
    """Tests for category phase edge cases."""

    def test_malformed_categories_file_is_fatal(self, store, make_data_dir):
        """Should fail the run on an invalid categories document."""
        root = make_data_dir(categories={"categories": "nope"})
        with pytest.raises(ValidationError):
            _run(ImportOrchestrator(store), root)

    def test_failed_group_leaves_without_parent(self, make_data_dir, categories_document):
        """Should import leaves without parent when their group failed."""
        store = InMemoryContentStore()
        original_create = store.create

        async def failing_group_create(collection, data):
            if data["externalId"] == "group-1":
                raise ContentStoreError("boom")
            return await original_create(collection, data)

        store.create = failing_group_create
        root = make_data_dir(categories=categories_document)
        stats = _run(ImportOrchestrator(store), root)

        records = {r["externalId"]: r for r in store.records("categories")}
        assert stats.categories.errors == 1
        assert stats.categories.imported == 4
        assert "parent" not in records["cat-10"]
        assert records["cat-20"]["parent"] == records["group-2"]["id"]

    def test_skipped_categories_still_build_map(
        self, store, make_data_dir, categories_document, create_raw_event
    ):
        """Should resolve event categories even when the category phase is skipped."""
        root = make_data_dir(categories=categories_document, events=[create_raw_event()])
        stats = _run(ImportOrchestrator(store), root, skip_categories=True)
        assert stats.categories.processed == 0
        assert store.count("categories") == 0
        assert store.records("events")[0]["categories"] == ["Museums"]


class TestAmenities:
    """Tests for the amenity map."""

    def test_grouped_amenities_file(self, store, make_data_dir, create_raw_profile):
        """Should resolve profile amenities from a grouped amenities file."""
        amenities = {
            "categories": [
                {"id": "a", "name": "Facilities", "categories": [{"id": 1, "name": "WiFi"}]}
            ]
        }
        root = make_data_dir(
            amenities=amenities, profiles=[create_raw_profile(amenities=[1, 999])]
        )
        _run(ImportOrchestrator(store), root)
        assert store.records("profiles")[0]["amenities"] == ["WiFi"]

    def test_flat_amenities_file(self, store, make_data_dir, create_raw_profile):
        """Should accept a flat list of amenities."""
        root = make_data_dir(
            amenities=[{"id": 1, "name": "WiFi"}, {"id": 2, "name": "Pool"}],
            profiles=[create_raw_profile(amenities=[2])],
        )
        orchestrator = ImportOrchestrator(store)
        _run(orchestrator, root)
        assert len(orchestrator.amenity_map) == 2
        assert store.records("profiles")[0]["amenities"] == ["Pool"]

    def test_malformed_amenities_ignored(self, store, make_data_dir, create_raw_profile):
        """Should fall back to an empty amenity map."""
        root = make_data_dir(amenities="{oops", profiles=[create_raw_profile()])
        stats = _run(ImportOrchestrator(store), root)
        assert stats.profiles.imported == 1
        assert store.records("profiles")[0]["amenities"] == []


class TestPhaseSelection:
    """Tests for skip flags."""

    def test_only_events(self, store, full_data_dir):
        """Should run only the event phase."""
        stats = _run(
            ImportOrchestrator(store),
            full_data_dir,
            skip_categories=True,
            skip_profiles=True,
        )
        assert stats.events.imported == 2
        assert stats.profiles.processed == 0
        assert store.count("categories") == 0


class TestConcurrency:
    """Tests for the in-flight bound."""

    def test_listing_phases_bounded(self, make_data_dir, create_raw_event, create_raw_profile):
        """Should never run more store lookups at once than the concurrency limit."""
        store = PeakTrackingStore(delay=0.05)
        root = make_data_dir(
            events=[create_raw_event(1000 + i) for i in range(12)],
            profiles=[create_raw_profile(2000 + i) for i in range(12)],
        )
        stats = _run(ImportOrchestrator(store), root, concurrency=3, batch_size=50)

        assert stats.events.imported == 12
        assert stats.profiles.imported == 12
        assert 1 < store.peak["events"] <= 3
        assert 1 < store.peak["profiles"] <= 3

    def test_category_phase_bounded(self, make_data_dir):
        """Should bound group and leaf writes by the concurrency limit."""
        document = {
            "categories": [
                {
                    "id": g,
                    "name": f"Group {g}",
                    "categories": [
                        {"id": g * 100 + i, "name": f"Leaf {g}-{i}"} for i in range(4)
                    ],
                }
                for g in range(1, 5)
            ]
        }
        store = PeakTrackingStore(delay=0.05)
        stats = _run(
            ImportOrchestrator(store), make_data_dir(categories=document), concurrency=2
        )

        assert stats.categories.imported == 20
        assert 1 < store.peak["categories"] <= 2

    def test_single_worker(self, make_data_dir, create_raw_event):
        """Should process one item at a time with concurrency 1."""
        store = PeakTrackingStore()
        root = make_data_dir(events=[create_raw_event(1000 + i) for i in range(5)])
        _run(ImportOrchestrator(store), root, concurrency=1)
        assert store.peak["events"] == 1


class TestFatalErrors:
    """Tests for run-level failures."""

    def test_connect_failure(self, full_data_dir):
        """Should abort with ContentStoreError when the store is unreachable."""
        orchestrator = ImportOrchestrator(InMemoryContentStore(fail_connect=True))
        with pytest.raises(ContentStoreError) as exc_info:
            _run(orchestrator, full_data_dir)
        assert "initialize" in str(exc_info.value)
        assert orchestrator.state is ImportState.FAILED

    def test_run_deadline(self, make_data_dir, create_raw_event):
        """Should fail with ImportTimeoutError when the run deadline passes."""
        store = SlowFindStore(delay=1.0)
        root = make_data_dir(events=[create_raw_event()])
        with pytest.raises(ImportTimeoutError):
            _run(ImportOrchestrator(store), root, run_deadline_s=0.05)

    def test_cancel(self, make_data_dir, categories_document):
        """Should stop the run after cancel() is called."""
        store = InMemoryContentStore()
        orchestrator = ImportOrchestrator(store, options=ImportOptions(concurrency=1))
        original_find = store.find

        async def cancelling_find(collection, where):
            orchestrator.cancel()
            return await original_find(collection, where)

        store.find = cancelling_find
        root = make_data_dir(categories=categories_document)

        with pytest.raises(ImportCancelledError):
            asyncio.run(orchestrator.run_import(root))
        assert orchestrator.cancelled
        assert store.count("categories") == 1

    def test_cancel_stops_in_flight_writes(self, make_data_dir, create_raw_event):
        """Should leave no store write running once run_import has raised."""
        store = InMemoryContentStore()
        orchestrator = ImportOrchestrator(store, options=ImportOptions(concurrency=2))
        original_find = store.find
        original_create = store.create
        cancelled_by = []

        async def cancelling_find(collection, where):
            if not cancelled_by:
                cancelled_by.append(where["externalId"])
                orchestrator.cancel()
            return await original_find(collection, where)

        async def slow_create(collection, data):
            if data["externalId"] == cancelled_by[0]:
                await asyncio.sleep(0.3)
            return await original_create(collection, data)

        store.find = cancelling_find
        store.create = slow_create
        root = make_data_dir(events=[create_raw_event(1000 + i) for i in range(5)])

        async def scenario():
            with pytest.raises(ImportCancelledError):
                await orchestrator.run_import(root)
            creates = store.calls["create"]
            stored = store.count("events")
            await asyncio.sleep(0.5)
            return creates, stored

        creates, stored = asyncio.run(scenario())
        assert store.calls["create"] == creates
        assert store.count("events") == stored
        assert stored < 5

    def test_status_snapshot(self, store, full_data_dir):
        """Should expose a status snapshot."""
        orchestrator = ImportOrchestrator(store)
        _run(orchestrator, full_data_dir)
        status = orchestrator.get_status()
        assert status["state"] == "completed"
        assert status["categories_mapped"] == 3
