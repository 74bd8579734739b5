"""Observability helpers: logging, progress, error aggregation, run reports."""

from fedsync_import.monitoring.error_aggregator import ErrorAggregator, ErrorRecord
from fedsync_import.monitoring.logging import (
    LoggingOptions,
    setup_import_logger,
    with_context,
)
from fedsync_import.monitoring.progress import ProgressReporter, format_time
from fedsync_import.monitoring.reporting import (
    EntityStats,
    ImportStats,
    build_run_summary,
    format_duration,
    format_stats_table,
)

__all__ = [
    "EntityStats",
    "ErrorAggregator",
    "ErrorRecord",
    "ImportStats",
    "LoggingOptions",
    "ProgressReporter",
    "build_run_summary",
    "format_duration",
    "format_stats_table",
    "format_time",
    "setup_import_logger",
    "with_context",
]
