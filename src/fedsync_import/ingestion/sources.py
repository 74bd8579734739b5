"""
Filesystem access for the FedSync data directory.

Layout::

    <data>/categories/categories.json   full group/category tree
    <data>/amenities/amenities.json     optional, same shape as categories
    <data>/events/*.json                one file per event
    <data>/profiles/*.json              one file per profile

All reads run in a worker thread so the event loop is never blocked. "Not
found" is reported distinctly from other I/O failures: the orchestrator
treats the former as an empty phase and the latter as fatal.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from fedsync_import.errors import FileSystemError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataLayout:
    """Paths of a FedSync export rooted at ``root``."""

    root: Path

    @classmethod
    def at(cls, root: str | Path) -> "DataLayout":
        return cls(Path(root))

    @property
    def categories_file(self) -> Path:
        return self.root / "categories" / "categories.json"

    @property
    def amenities_file(self) -> Path:
        return self.root / "amenities" / "amenities.json"

    @property
    def events_dir(self) -> Path:
        return self.root / "events"

    @property
    def profiles_dir(self) -> Path:
        return self.root / "profiles"


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def read_json(path: str | Path) -> Any:
    """
    Read and parse a JSON file.

    Raises:
        FileSystemError: ``not_found=True`` when the file does not exist
        ValidationError: when the content is not valid JSON
    """
    path = Path(path)
    try:
        text = await asyncio.to_thread(_read_text, path)
    except FileNotFoundError as e:
        raise FileSystemError(f"File not found: {path}", path=str(path), not_found=True) from e
    except OSError as e:
        raise FileSystemError(f"Failed to read {path}: {e}", path=str(path)) from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Invalid JSON in {path.name}: {e.msg} (line {e.lineno})",
            details={"path": str(path), "line": e.lineno, "column": e.colno},
        ) from e


def _list_json(directory: Path) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix == ".json" and p.is_file())


async def list_json_files(directory: str | Path) -> List[Path]:
    """
    List ``*.json`` files of a directory in name order.

    Raises:
        FileSystemError: ``not_found=True`` when the directory does not exist
    """
    directory = Path(directory)
    try:
        return await asyncio.to_thread(_list_json, directory)
    except FileNotFoundError as e:
        raise FileSystemError(
            f"Directory not found: {directory}", path=str(directory), not_found=True
        ) from e
    except NotADirectoryError as e:
        raise FileSystemError(
            f"Not a directory: {directory}", path=str(directory)
        ) from e
    except OSError as e:
        raise FileSystemError(f"Failed to list {directory}: {e}", path=str(directory)) from e
