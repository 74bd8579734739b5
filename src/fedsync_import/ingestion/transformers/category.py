"""
Category Transformer.

Flattens the two-level FedSync category tree into store records:

- a group yields ``{title, type: "group", externalId: "group-<id>", isGroup: true}``
- each nested category yields ``{title, type: "category", externalId: "cat-<id>", groupName}``

The leaf's ``parent`` link is not known here; it is filled in by the
orchestrator once the group has been persisted and has a store identifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from fedsync_import.errors import TransformationError, ValidationError
from fedsync_import.ingestion.category_map import CategoryMap
from fedsync_import.schemas.source import SourceCategory, SourceCategoryGroup
from fedsync_import.schemas.validation import validate_source_group

logger = logging.getLogger(__name__)

GROUP_TYPE = "group"
CATEGORY_TYPE = "category"


def group_external_id(group_id: Any) -> str:
    return f"group-{group_id}"


def category_external_id(category_id: Any) -> str:
    return f"cat-{category_id}"


def transform_category_group(group: SourceCategoryGroup) -> Dict[str, Any]:
    """Transform a category group into a store record."""
    return {
        "title": group.name,
        "type": GROUP_TYPE,
        "externalId": group_external_id(group.id),
        "isGroup": True,
    }


def transform_category(
    category: SourceCategory, group_name: Optional[str] = None
) -> Dict[str, Any]:
    """Transform a leaf category into a store record."""
    record: Dict[str, Any] = {
        "title": category.name.strip(),
        "type": CATEGORY_TYPE,
        "externalId": category_external_id(category.id),
    }
    if group_name:
        record["groupName"] = group_name
    return record


@dataclass(frozen=True)
class LeafCategory:
    """A transformed leaf plus the external ID of the group that owns it."""

    record: Dict[str, Any]
    group_external_id: str


@dataclass
class CategoryTree:
    """Result of transforming a whole categories file."""

    groups: List[Dict[str, Any]] = field(default_factory=list)
    leaves: List[LeafCategory] = field(default_factory=list)
    category_map: CategoryMap = field(default_factory=CategoryMap.empty)

    @property
    def records(self) -> List[Dict[str, Any]]:
        """All records, each group immediately followed by its leaves."""
        by_group: Dict[str, List[Dict[str, Any]]] = {}
        for leaf in self.leaves:
            by_group.setdefault(leaf.group_external_id, []).append(leaf.record)
        flat: List[Dict[str, Any]] = []
        for group in self.groups:
            flat.append(group)
            flat.extend(by_group.get(group["externalId"], []))
        return flat

    def __len__(self) -> int:
        return len(self.groups) + len(self.leaves)


def parse_categories_file(data: Any) -> List[SourceCategoryGroup]:
    """
    Validate the raw categories document.

    Accepts ``{"categories": [...]}`` or a bare list of groups.

    Raises:
        ValidationError: if the document or any group fails its schema
    """
    if isinstance(data, dict):
        raw_groups = data.get("categories")
    else:
        raw_groups = data
    if not isinstance(raw_groups, list):
        raise ValidationError(
            "Categories file must contain a list of category groups",
            details={"found": type(raw_groups).__name__},
        )

    groups = []
    for index, raw_group in enumerate(raw_groups):
        result = validate_source_group(raw_group)
        if not result.valid:
            raise ValidationError(
                f"Invalid category group at index {index}",
                issues=result.issues,
                details={"index": index},
            )
        groups.append(result.value)
    return groups


class CategoryTransformer:
    """Transforms a categories document into a :class:`CategoryTree`."""

    def transform_groups(self, groups: Iterable[SourceCategoryGroup]) -> CategoryTree:
        tree = CategoryTree()
        groups = list(groups)
        for group in groups:
            group_record = transform_category_group(group)
            tree.groups.append(group_record)
            for category in group.categories:
                tree.leaves.append(
                    LeafCategory(
                        record=transform_category(category, group.name),
                        group_external_id=group_record["externalId"],
                    )
                )
        tree.category_map = CategoryMap.from_groups(groups)
        logger.debug(
            f"Transformed {len(tree.groups)} groups and {len(tree.leaves)} categories"
        )
        return tree

    def transform_file(self, data: Any) -> CategoryTree:
        """
        Transform the parsed contents of ``categories.json``.

        Raises:
            ValidationError: if the document does not match the source schema
            TransformationError: on unexpected failures while flattening
        """
        groups = parse_categories_file(data)
        try:
            return self.transform_groups(groups)
        except (AttributeError, KeyError, TypeError) as e:
            raise TransformationError(f"Failed to transform categories: {e}") from e


def transform_categories_file(data: Any) -> List[Dict[str, Any]]:
    """Flatten a categories document into store records (groups then leaves)."""
    return CategoryTransformer().transform_file(data).records
