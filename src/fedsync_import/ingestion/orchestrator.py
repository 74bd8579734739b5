"""
Import Orchestrator.

Coordinates a complete FedSync import: connects to the content store, then
runs the category, event and profile phases in that order.

State machine:
    IDLE -> INITIALIZING -> [CATEGORIES] -> [EVENTS] -> [PROFILES] -> COMPLETED
                                                                   \\-> FAILED

Error policy:
- Item-level failures (bad JSON, schema mismatch, transform error, failed
  upsert) are recorded in the phase counters and the ErrorAggregator; the
  phase moves on to the next item.
- Connection failures and filesystem errors other than "not found" abort the
  run. A missing categories file or listings directory is an empty phase.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from fedsync_import.errors import (
    ContentStoreError,
    FedSyncImportError,
    FileSystemError,
    TransformationError,
    ValidationError,
)
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.options import ImportOptions
from fedsync_import.ingestion.resilience import with_timeout
from fedsync_import.ingestion.sources import DataLayout, list_json_files, read_json
from fedsync_import.ingestion.store.base import ContentStore, Record
from fedsync_import.ingestion.transformers import CategoryTransformer, CategoryTree, TransformerSet
from fedsync_import.ingestion.transformers.category import parse_categories_file
from fedsync_import.monitoring.error_aggregator import ErrorAggregator
from fedsync_import.monitoring.logging import with_context
from fedsync_import.monitoring.progress import ProgressReporter
from fedsync_import.monitoring.reporting import EntityStats, ImportStats, build_run_summary
from fedsync_import.schemas.listing import (
    EventListing,
    ListingKind,
    ProfileListing,
    UnknownListing,
    decode_listing,
)
from fedsync_import.schemas.source import SourceCategory
from fedsync_import.schemas.validation import (
    ValidationResult,
    validate_transformed_category,
    validate_transformed_event,
    validate_transformed_profile,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATEGORIES_COLLECTION = "categories"
EVENTS_COLLECTION = "events"
PROFILES_COLLECTION = "profiles"


class ImportState(str, Enum):
    """Lifecycle of an orchestrator run."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    CATEGORIES = "categories"
    EVENTS = "events"
    PROFILES = "profiles"
    COMPLETED = "completed"
    FAILED = "failed"


class ItemOutcome(str, Enum):
    IMPORTED = "imported"
    VALIDATED = "validated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ListingPhase:
    """Static description of an event/profile phase."""

    name: str
    collection: str
    kind: ListingKind
    transformers: TransformerSet
    validator: Callable[..., ValidationResult]


def _batches(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def _gather_batch(coros: Iterable[Awaitable[T]]) -> List[T]:
    """
    Run one batch concurrently.

    If any item raises (or the batch itself is cancelled), the remaining
    items are cancelled and awaited before the error propagates, so no store
    call outlives the batch.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _generate_run_id() -> str:
    """Generate unique run identifier."""
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    return f"import_{timestamp}_{str(uuid.uuid4())[:8]}"


class ImportCancelledError(FedSyncImportError):
    """The run was cancelled through :meth:`ImportOrchestrator.cancel`."""

    code = "CANCELLED"


class ImportOrchestrator:
    """
    Coordinates the category, event and profile import phases.

    Responsibilities:
    - Establish the content-store connection
    - Build the category map once and hand it to later phases
    - Bound item-level concurrency with a semaphore
    - Perform idempotent create-or-update keyed by externalId
    - Aggregate statistics and item errors
    """

    def __init__(
        self,
        store: ContentStore,
        options: Optional[ImportOptions] = None,
        errors: Optional[ErrorAggregator] = None,
        progress_factory: Callable[[], ProgressReporter] = ProgressReporter,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Content store implementing find/create/update
            options: Default run options (overridable per run)
            errors: Aggregator shared with the caller; a fresh one by default
            progress_factory: Builds one progress reporter per phase
        """
        self.store = store
        self.options = options or ImportOptions()
        self.errors = errors if errors is not None else ErrorAggregator()
        self.progress_factory = progress_factory
        self.logger = logging.getLogger("fedsync_import.orchestrator")
        self.state = ImportState.IDLE
        self.run_id: Optional[str] = None
        self.category_map = CategoryMap.empty()
        self.amenity_map = CategoryMap.empty()
        self._cancel_event = asyncio.Event()
        self._key_locks: Dict[tuple, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def initialize(self) -> None:
        """
        Establish the content-store connection.

        Raises:
            ContentStoreError: if the store cannot be reached
        """
        self.logger.info("Initializing content store connection...")
        try:
            await with_timeout(
                self.store.connect(),
                self.options.item_timeout_s,
                description="Content store connection",
            )
        except Exception as e:
            self.logger.error(f"Failed to connect to content store: {e}")
            raise ContentStoreError(
                "Failed to initialize content store connection",
                details={"cause": str(e)},
            ) from e
        self.logger.info("Content store connection established")

    def cancel(self) -> None:
        """Request cooperative cancellation of the current run."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise ImportCancelledError("Import cancelled")

    # ========================================================================
    # RUN
    # ========================================================================

    async def run_import(
        self, data_path: str | Path, options: Optional[ImportOptions] = None
    ) -> ImportStats:
        """
        Run a complete import of a FedSync data directory.

        Args:
            data_path: Root of the export (categories/, events/, profiles/)
            options: Run options; defaults to the orchestrator's options

        Returns:
            ImportStats with per-entity counters and timings

        Raises:
            FedSyncImportError: on phase-level failures (connection,
                unreadable directories, run deadline, cancellation)
        """
        options = options or self.options
        self.options = options
        stats = ImportStats()
        layout = DataLayout.at(data_path)
        self.run_id = _generate_run_id()
        self._cancel_event = asyncio.Event()
        self._key_locks = defaultdict(asyncio.Lock)
        log = with_context(self.logger, run_id=self.run_id)

        log.info(f"Starting FedSync import from {layout.root}")
        log.info(
            f"Options: phases={options.phases} batch_size={options.batch_size} "
            f"concurrency={options.concurrency} dry_run={options.dry_run}"
        )

        try:
            await with_timeout(
                self._run_phases(layout, stats, options),
                options.run_deadline_s,
                description="Import run",
            )
        except Exception as e:
            self.state = ImportState.FAILED
            stats.finish()
            log.error(f"Import failed: {e}")
            self._save_error_report(options)
            raise

        self.state = ImportState.COMPLETED
        stats.finish()
        log.info("Import completed")
        log.info(
            "\n"
            + build_run_summary(
                stats,
                self.errors,
                error_limit=options.error_display_limit,
                error_log_path=(
                    str(options.error_report_path) if options.error_report_path else None
                ),
            )
        )
        self._save_error_report(options)
        return stats

    async def _run_phases(
        self, layout: DataLayout, stats: ImportStats, options: ImportOptions
    ) -> None:
        self.state = ImportState.INITIALIZING
        await self.initialize()

        if not options.skip_categories:
            self.state = ImportState.CATEGORIES
            self.logger.info("Phase 1: importing categories")
            self.category_map = await self.import_categories(layout, stats.categories, options)
        else:
            self.category_map = await self.load_category_map(layout)

        self.amenity_map = await self.load_amenity_map(layout)
        transformers = TransformerSet.build(
            self.category_map,
            self.amenity_map,
            max_description_length=options.max_description_length,
        )

        if not options.skip_events:
            self.state = ImportState.EVENTS
            self.logger.info("Phase 2: importing events")
            await self.import_listings(
                ListingPhase(
                    name="events",
                    collection=EVENTS_COLLECTION,
                    kind=ListingKind.EVENT,
                    transformers=transformers,
                    validator=validate_transformed_event,
                ),
                layout.events_dir,
                stats.events,
                options,
            )

        if not options.skip_profiles:
            self.state = ImportState.PROFILES
            self.logger.info("Phase 3: importing profiles")
            await self.import_listings(
                ListingPhase(
                    name="profiles",
                    collection=PROFILES_COLLECTION,
                    kind=ListingKind.PROFILE,
                    transformers=transformers,
                    validator=validate_transformed_profile,
                ),
                layout.profiles_dir,
                stats.profiles,
                options,
            )

    # ========================================================================
    # CATEGORY PHASE
    # ========================================================================

    async def _load_category_tree(self, layout: DataLayout) -> Optional[CategoryTree]:
        try:
            data = await read_json(layout.categories_file)
        except FileSystemError as e:
            if e.not_found:
                self.logger.warning(
                    f"Categories file not found, skipping category import: {layout.categories_file}"
                )
                return None
            raise
        return CategoryTransformer().transform_file(data)

    async def load_category_map(self, layout: DataLayout) -> CategoryMap:
        """Build the category map without persisting anything."""
        tree = await self._load_category_tree(layout)
        return tree.category_map if tree is not None else CategoryMap.empty()

    async def import_categories(
        self, layout: DataLayout, stats: EntityStats, options: ImportOptions
    ) -> CategoryMap:
        """
        Import the category tree: all groups first, then leaf categories.

        Returns:
            The category map built from the file (empty if it is missing)
        """
        log = with_context(self.logger, run_id=self.run_id, phase="categories")
        tree = await self._load_category_tree(layout)
        if tree is None:
            return CategoryMap.empty()

        stats.processed = len(tree)
        log.info(
            f"Found {len(tree.groups)} groups and {len(tree.leaves)} categories to import"
        )

        if options.dry_run:
            for record in tree.records:
                try:
                    self._validate_category(record, options)
                except ValidationError as e:
                    stats.errors += 1
                    self.errors.add(record.get("externalId", "<unknown>"), e, phase="categories")
            log.info(f"Dry run: {stats.processed} categories would be imported")
            stats.imported = stats.processed
            return tree.category_map

        progress = self.progress_factory()
        progress.start("Importing categories", stats.processed)
        limiter = asyncio.Semaphore(options.concurrency)

        # Groups must all be persisted before any leaf references them
        group_ids: Dict[str, Any] = {}
        for batch in _batches(tree.groups, options.batch_size):
            results = await _gather_batch(
                self._import_category_record(record, stats, options, limiter)
                for record in batch
            )
            for record, stored in zip(batch, results):
                if stored is not None:
                    group_ids[record["externalId"]] = stored.get("id")
            progress.update(stats.imported + stats.errors)

        for batch in _batches(tree.leaves, options.batch_size):
            records = []
            for leaf in batch:
                record = dict(leaf.record)
                parent_id = group_ids.get(leaf.group_external_id)
                if parent_id is not None:
                    record["parent"] = parent_id
                else:
                    log.warning(
                        f"Group {leaf.group_external_id} was not persisted; "
                        f"importing {record['externalId']} without parent"
                    )
                records.append(record)
            await _gather_batch(
                self._import_category_record(record, stats, options, limiter)
                for record in records
            )
            progress.update(stats.imported + stats.errors)

        progress.finish(f"Imported {stats.imported} categories")
        return tree.category_map

    @staticmethod
    def _validate_category(record: Record, options: ImportOptions) -> None:
        check = validate_transformed_category(record, max_title_length=options.max_title_length)
        if not check.valid:
            raise ValidationError(
                f"Category {record.get('externalId')} failed validation: "
                f"{'; '.join(check.messages)}",
                issues=check.issues,
            )

    async def _import_category_record(
        self,
        record: Record,
        stats: EntityStats,
        options: ImportOptions,
        limiter: asyncio.Semaphore,
    ) -> Optional[Record]:
        item = record.get("externalId", "<unknown>")
        async with limiter:
            try:
                self._check_cancelled()
                self._validate_category(record, options)
                stored = await self._upsert(CATEGORIES_COLLECTION, record, options)
            except ImportCancelledError:
                raise
            except Exception as e:
                stats.errors += 1
                self.errors.add(item, e, phase="categories")
                self.logger.error(f"Failed to import category {item}: {e}")
                return None
        stats.imported += 1
        return stored

    # ========================================================================
    # AMENITIES
    # ========================================================================

    async def load_amenity_map(self, layout: DataLayout) -> CategoryMap:
        """
        Build the amenity map from the optional amenities file.

        The file may use the category group layout or be a flat list of
        ``{id, name}`` entries. A missing or malformed file yields an empty
        map; amenities are then simply left unresolved.
        """
        try:
            data = await read_json(layout.amenities_file)
        except FileSystemError as e:
            if e.not_found:
                self.logger.debug("No amenities file found; amenity map is empty")
                return CategoryMap.empty()
            raise
        except ValidationError as e:
            self.logger.warning(f"Ignoring unreadable amenities file: {e}")
            return CategoryMap.empty()

        entries = data.get("amenities", data.get("categories")) if isinstance(data, dict) else data
        try:
            if isinstance(entries, list) and all(
                isinstance(e, dict) and "categories" in e for e in entries
            ):
                amenity_map = CategoryMap.from_groups(parse_categories_file(entries))
            else:
                amenity_map = CategoryMap(
                    {
                        a.id: a.name
                        for a in (SourceCategory.model_validate(e) for e in entries or [])
                    }
                )
        except (ValidationError, ValueError, TypeError) as e:
            self.logger.warning(f"Ignoring malformed amenities file: {e}")
            return CategoryMap.empty()

        self.logger.info(f"Loaded {len(amenity_map)} amenities")
        return amenity_map

    # ========================================================================
    # EVENT / PROFILE PHASES
    # ========================================================================

    async def import_listings(
        self,
        phase: ListingPhase,
        directory: Path,
        stats: EntityStats,
        options: ImportOptions,
    ) -> None:
        """
        Import one listing file per item under a bounded concurrency limit.

        Item completion order is unspecified; only the counters matter.
        """
        log = with_context(self.logger, run_id=self.run_id, phase=phase.name)
        try:
            files = await list_json_files(directory)
        except FileSystemError as e:
            if e.not_found:
                log.warning(f"{phase.name.capitalize()} directory not found, skipping: {directory}")
                return
            raise

        stats.processed = len(files)
        log.info(f"Found {len(files)} {phase.name} files")
        if not files:
            return

        progress = self.progress_factory()
        progress.start(f"Importing {phase.name}", len(files))
        limiter = asyncio.Semaphore(options.concurrency)
        done = 0

        async def run_one(path: Path) -> None:
            nonlocal done
            async with limiter:
                outcome = await self._import_listing_file(phase, path, options)
            if outcome is ItemOutcome.IMPORTED:
                stats.imported += 1
            elif outcome is ItemOutcome.FAILED:
                stats.errors += 1
            done += 1
            progress.update(done)

        # Batches cap how many tasks exist at once; the semaphore caps in-flight work
        for batch in _batches(files, options.batch_size):
            await _gather_batch(run_one(path) for path in batch)

        if options.dry_run:
            log.info(f"Dry run: {stats.processed} {phase.name} would be imported")
            stats.imported = stats.processed

        progress.finish(
            f"Imported {stats.imported}/{stats.processed} {phase.name} ({stats.errors} errors)"
        )

    async def _import_listing_file(
        self, phase: ListingPhase, path: Path, options: ImportOptions
    ) -> ItemOutcome:
        item = f"{phase.name}/{path.name}"
        try:
            self._check_cancelled()
            raw = await read_json(path)

            decoded = decode_listing(raw)
            if not decoded.valid:
                raise ValidationError(
                    f"Source record failed validation: {'; '.join(decoded.messages)}",
                    issues=decoded.issues,
                )
            listing = decoded.value
            if isinstance(listing, UnknownListing) and listing.ignored:
                self.logger.debug(f"Skipping {item}: listing type {listing.type_tag!r}")
                return ItemOutcome.SKIPPED

            if isinstance(listing, (EventListing, ProfileListing)) and listing.kind is not phase.kind:
                raise TransformationError(
                    f"Expected {phase.kind.value} listing, got {listing.kind.value}",
                    details={"kind": listing.kind.value},
                )
            record = phase.transformers.transform(listing)
            check = phase.validator(record, max_title_length=options.max_title_length)
            if not check.valid:
                raise ValidationError(
                    f"Transformed record failed validation: {'; '.join(check.messages)}",
                    issues=check.issues,
                )

            if options.dry_run:
                return ItemOutcome.VALIDATED

            self._check_cancelled()
            await self._upsert(phase.collection, record, options)
            return ItemOutcome.IMPORTED

        except ImportCancelledError:
            raise
        except Exception as e:
            self.errors.add(item, e, phase=phase.name)
            self.logger.error(f"Failed to import {item}: {e}")
            return ItemOutcome.FAILED

    # ========================================================================
    # UPSERT
    # ========================================================================

    async def _upsert(self, collection: str, record: Record, options: ImportOptions) -> Record:
        """
        Create or update a record keyed by its externalId.

        Lookup-then-write is not atomic on the store side, so writers of the
        same externalId are serialized with a per-key lock.
        """
        external_id = record["externalId"]
        timeout = options.item_timeout_s
        async with self._key_locks[(collection, external_id)]:
            try:
                existing = await with_timeout(
                    self.store.find(collection, {"externalId": external_id}),
                    timeout,
                    description=f"find {collection}/{external_id}",
                )
                if existing:
                    return await with_timeout(
                        self.store.update(collection, existing[0]["id"], record),
                        timeout,
                        description=f"update {collection}/{external_id}",
                    )
                return await with_timeout(
                    self.store.create(collection, record),
                    timeout,
                    description=f"create {collection}/{external_id}",
                )
            except FedSyncImportError:
                raise
            except Exception as e:
                raise ContentStoreError(
                    f"Upsert of {collection}/{external_id} failed: {e}"
                ) from e

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _save_error_report(self, options: ImportOptions) -> None:
        if options.error_report_path and self.errors.count:
            self.errors.save_to_file(options.error_report_path)

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the orchestrator for status displays."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "errors": self.errors.count,
            "categories_mapped": len(self.category_map),
            "amenities_mapped": len(self.amenity_map),
        }


async def run_import(
    store: ContentStore,
    data_path: str | Path,
    options: Optional[ImportOptions] = None,
    errors: Optional[ErrorAggregator] = None,
) -> ImportStats:
    """Convenience wrapper: run one import and close the store afterwards."""
    orchestrator = ImportOrchestrator(store, options=options, errors=errors)
    try:
        return await orchestrator.run_import(data_path)
    finally:
        await store.close()


__all__: List[str] = [
    "ImportCancelledError",
    "ImportOrchestrator",
    "ImportState",
    "ItemOutcome",
    "ListingPhase",
    "run_import",
]
