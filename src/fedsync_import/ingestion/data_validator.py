"""
Pre-flight checks for a FedSync data directory.

Used by the ``validate`` CLI command before an import. The categories
directory is required; missing events or profiles directories only produce
warnings because the import treats them as empty phases.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from fedsync_import.ingestion.sources import DataLayout

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10
LARGE_DIRECTORY_THRESHOLD = 10_000


@dataclass
class DataStructureReport:
    """Result of a data-directory check."""

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    file_counts: Dict[str, int] = field(default_factory=dict)

    def error(self, message: str) -> None:
        self.valid = False
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


def _sample_json_files(
    directory: Path,
    label: str,
    report: DataStructureReport,
    sample_size: int,
    large_threshold: int,
) -> None:
    files = sorted(p for p in directory.glob("*.json") if p.is_file())
    report.file_counts[label] = len(files)
    if not files:
        report.warn(f"No JSON files found in {label} directory: {directory}")
        return
    if len(files) > large_threshold:
        report.warn(
            f"{label} directory holds {len(files)} files; consider a larger --batch-size"
        )
    for path in files[:sample_size]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                json.load(f)
        except json.JSONDecodeError as e:
            report.error(f"Invalid JSON in {path}: {e.msg} (line {e.lineno})")
        except OSError as e:
            report.error(f"Cannot read {path}: {e}")


def validate_data_structure(
    data_path: str | Path,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    large_threshold: int = LARGE_DIRECTORY_THRESHOLD,
) -> DataStructureReport:
    """
    Check the layout of a data directory and sample its JSON files.

    Args:
        data_path: Root of the FedSync export
        sample_size: Files parsed per directory
        large_threshold: File count above which a warning is emitted

    Returns:
        DataStructureReport with errors, warnings and file counts
    """
    report = DataStructureReport()
    layout = DataLayout.at(data_path)

    if not layout.root.is_dir():
        report.error(f"Data path does not exist or is not a directory: {layout.root}")
        return report

    if not layout.categories_file.parent.is_dir():
        report.error(f"Categories directory not found: {layout.categories_file.parent}")
    elif not layout.categories_file.is_file():
        report.error(f"Categories file not found: {layout.categories_file}")
    else:
        _sample_json_files(
            layout.categories_file.parent, "categories", report, sample_size, large_threshold
        )

    for label, directory in (("events", layout.events_dir), ("profiles", layout.profiles_dir)):
        if not directory.is_dir():
            report.warn(f"{label.capitalize()} directory not found: {directory}")
            report.file_counts[label] = 0
            continue
        _sample_json_files(directory, label, report, sample_size, large_threshold)

    logger.debug(
        f"Data structure check for {layout.root}: "
        f"{len(report.errors)} errors, {len(report.warnings)} warnings"
    )
    return report
