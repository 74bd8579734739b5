"""
Ingestion Layer for the FedSync listing importer.

This package reads a FedSync export from disk, transforms categories,
events and profiles into content-store records, and upserts them.

Key Components:
- ImportOrchestrator: Runs the category, event and profile phases
- CategoryMap: Immutable category ID -> name index shared across phases
- Transformers: CategoryTransformer, EventTransformer, ProfileTransformer
- Content stores: RestContentStore (HTTP) and InMemoryContentStore
"""

from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.ingestion.options import ImportOptions, resolve_phase_flags
from fedsync_import.ingestion.orchestrator import ImportOrchestrator, ImportState, run_import

__all__ = [
    "CategoryMap",
    "ImportOptions",
    "ImportOrchestrator",
    "ImportState",
    "resolve_phase_flags",
    "run_import",
]
