"""Run statistics and the end-of-run summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from fedsync_import.monitoring.error_aggregator import ErrorAggregator

ENTITY_TYPES = ("categories", "events", "profiles")


@dataclass
class EntityStats:
    """Counters for one entity type."""

    processed: int = 0
    imported: int = 0
    errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "imported": self.imported,
            "errors": self.errors,
        }


@dataclass
class ImportStats:
    """Per-entity counters plus run timing."""

    categories: EntityStats = field(default_factory=EntityStats)
    events: EntityStats = field(default_factory=EntityStats)
    profiles: EntityStats = field(default_factory=EntityStats)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def total_processed(self) -> int:
        return sum(self.for_type(t).processed for t in ENTITY_TYPES)

    @property
    def total_imported(self) -> int:
        return sum(self.for_type(t).imported for t in ENTITY_TYPES)

    @property
    def total_errors(self) -> int:
        return sum(self.for_type(t).errors for t in ENTITY_TYPES)

    def for_type(self, entity_type: str) -> EntityStats:
        if entity_type not in ENTITY_TYPES:
            raise KeyError(entity_type)
        return getattr(self, entity_type)

    def finish(self) -> None:
        self.end_time = datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        return {
            **{t: self.for_type(t).as_dict() for t in ENTITY_TYPES},
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration_seconds,
        }


def format_duration(seconds: Optional[float]) -> str:
    """Format a duration as ``Xh Ym``, ``Xm Ys`` or ``Xs``."""
    if seconds is None:
        return "-"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_stats_table(stats: ImportStats) -> str:
    """Render the counters as a fixed-width text table."""
    header = f"{'Type':<12}{'Processed':>11}{'Imported':>10}{'Errors':>8}"
    rule = "-" * len(header)
    rows = [header, rule]
    for t in ENTITY_TYPES:
        s = stats.for_type(t)
        rows.append(f"{t.capitalize():<12}{s.processed:>11}{s.imported:>10}{s.errors:>8}")
    rows.append(rule)
    rows.append(
        f"{'Total':<12}{stats.total_processed:>11}"
        f"{stats.total_imported:>10}{stats.total_errors:>8}"
    )
    rows.append(f"Duration: {format_duration(stats.duration_seconds)}")
    return "\n".join(rows)


def build_run_summary(
    stats: ImportStats,
    errors: ErrorAggregator,
    *,
    error_limit: int = 10,
    error_log_path: Optional[str] = None,
) -> str:
    """
    Build the user-facing run summary.

    When item errors occurred, the first ``error_limit`` messages are listed
    together with a pointer to the full error log.
    """
    lines = [format_stats_table(stats)]
    if errors.count:
        lines.append("")
        lines.append(errors.summary())
        lines.append(f"First {min(error_limit, errors.count)} errors:")
        for message in errors.first_messages(error_limit):
            lines.append(f"  * {message}")
        if errors.count > error_limit:
            lines.append(f"  ... and {errors.count - error_limit} more")
        if error_log_path:
            lines.append(f"Full error log: {error_log_path}")
    return "\n".join(lines)
