"""
Error aggregation for import runs.

Collects item-level failures so they can be summarized at the end of a run
and dumped to a JSON report. Purely observational: nothing in here raises
into the caller.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorRecord:
    """One recorded failure."""

    item: str
    error_type: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    phase: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item,
            "phase": self.phase,
            "timestamp": self.timestamp.isoformat(),
            "type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class ErrorAggregator:
    """
    Collects ``{item, error, timestamp}`` tuples across a run.

    Example:
        aggregator = ErrorAggregator()
        aggregator.add("events/123.json", TransformationError("bad type"))
        print(aggregator.summary())
    """

    def __init__(self) -> None:
        self._records: List[ErrorRecord] = []

    def add(
        self,
        item: str,
        error: BaseException | str,
        phase: Optional[str] = None,
    ) -> None:
        """
        Record a failure for an item.

        Args:
            item: Identifier of the failing item (file path, externalId)
            error: The exception raised, or a plain message
            phase: Import phase the item belongs to
        """
        try:
            if isinstance(error, BaseException):
                error_type = type(error).__name__
                message = str(error) or error_type
                details = dict(getattr(error, "details", {}) or {})
            else:
                error_type = "Error"
                message = str(error)
                details = {}
            self._records.append(
                ErrorRecord(
                    item=str(item),
                    error_type=error_type,
                    message=message,
                    phase=phase,
                    details=details,
                )
            )
        except Exception as e:  # pragma: no cover
            logger.warning(f"Could not record error for {item}: {e}")

    @property
    def count(self) -> int:
        return len(self._records)

    def get_all(self) -> List[ErrorRecord]:
        return list(self._records)

    def get_by_type(self, error_type: str) -> List[ErrorRecord]:
        """Return the records whose exception class name matches."""
        return [r for r in self._records if r.error_type == error_type]

    def get_by_phase(self, phase: str) -> List[ErrorRecord]:
        return [r for r in self._records if r.phase == phase]

    def counts_by_type(self) -> Dict[str, int]:
        return dict(Counter(r.error_type for r in self._records))

    def summary(self) -> str:
        """
        Build a type-bucketed text summary.

        Returns:
            "Total errors: N" followed by one line per error type
        """
        lines = [f"Total errors: {self.count}"]
        by_type = self.counts_by_type()
        if by_type:
            lines.append("Errors by type:")
            for error_type, n in sorted(by_type.items(), key=lambda kv: (-kv[1], kv[0])):
                lines.append(f"  - {error_type}: {n}")
        return "\n".join(lines)

    def first_messages(self, limit: int = 10) -> List[str]:
        """Return up to ``limit`` formatted messages for display."""
        return [f"{r.item}: {r.message}" for r in self._records[:limit]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "total": self.count,
                "by_type": self.counts_by_type(),
            },
            "errors": [r.to_dict() for r in self._records],
        }

    def save_to_file(self, path: str | Path) -> Optional[Path]:
        """
        Write the full error report as JSON.

        Args:
            path: Destination file; parent directories are created

        Returns:
            The written path, or None if writing failed
        """
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            logger.error(f"Failed to write error report to {target}: {e}")
            return None
        logger.info(f"Error report written to {target}")
        return target

    def clear(self) -> None:
        self._records.clear()
