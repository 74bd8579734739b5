"""
Field Mapper for FedSync snake_case -> store camelCase key renaming.

Renaming is table-driven: an explicit mapping covers every key the
importer cares about, including irregular ones such as ``name_sort`` ->
``sortName`` and ``free_us`` -> ``freeUS`` that no generic rule would get
right. Keys missing from the table fall back to :func:`snake_to_camel`.
"""

import logging
import re
from typing import Any, Dict, Iterable, Optional

from fedsync_import.configs.config import Config

logger = logging.getLogger(__name__)

_SNAKE_SEGMENT = re.compile(r"_([a-z0-9])")


def snake_to_camel(key: str) -> str:
    """
    Generic snake_case to camelCase conversion.

    Leading underscores are kept; ``line_1`` becomes ``line1``.
    """
    if "_" not in key.strip("_"):
        return key
    prefix = key[: len(key) - len(key.lstrip("_"))]
    body = key.lstrip("_")
    return prefix + _SNAKE_SEGMENT.sub(lambda m: m.group(1).upper(), body)


class FieldMapper:
    """
    Maps raw FedSync keys to content-store keys.

    Supports:
    - Explicit renames for irregular names
    - Generic snake_case fallback
    - Recursive renaming of nested dicts and lists
    - Skipping bulky raw fields (calendar, external_data, custom)
    """

    def __init__(
        self,
        field_names: Optional[Dict[str, str]] = None,
        skip_fields: Optional[Iterable[str]] = None,
    ):
        """
        Initialize the field mapper.

        Args:
            field_names: Explicit source -> target renames.
                Example: {"name_sort": "sortName", "free_us": "freeUS"}
            skip_fields: Raw keys dropped during recursive renaming
        """
        self.field_names = dict(field_names or {})
        self.skip_fields = frozenset(skip_fields or ())

    def map_key(self, key: str) -> str:
        """Return the target name for one source key."""
        mapped = self.field_names.get(key)
        if mapped is not None:
            return mapped
        return snake_to_camel(key)

    def transform_keys(self, data: Any) -> Any:
        """
        Recursively rename keys of dicts (and dicts inside lists).

        Args:
            data: Parsed JSON value

        Returns:
            A new structure with renamed keys and skip fields removed
        """
        if isinstance(data, dict):
            result = {}
            for key, value in data.items():
                if key in self.skip_fields:
                    continue
                result[self.map_key(str(key))] = self.transform_keys(value)
            return result
        if isinstance(data, list):
            return [self.transform_keys(item) for item in data]
        return data

    def strip_skipped(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Copy a raw record without the skip fields, keys left untouched."""
        return {k: v for k, v in data.items() if k not in self.skip_fields}


def create_field_mapper_from_config(config: Optional[Dict[str, Any]] = None) -> FieldMapper:
    """
    Create a FieldMapper from the import YAML config.

    Args:
        config: Dict with "field_names" and "skip_fields"; defaults to the
            packaged import.yaml

    Example config:
        field_names:
          name_sort: sortName
          free_us: freeUS
        skip_fields:
          - calendar
    """
    if config is None:
        config = Config.load_import_config()
    return FieldMapper(
        field_names=config.get("field_names", {}),
        skip_fields=config.get("skip_fields", []),
    )
