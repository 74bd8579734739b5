"""
Small pure helpers shared by the listing transformers.

Geo pairs, rich-text descriptions, contact sanitization, day names and
reference-ID extraction.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

# Zero-width space/non-joiner/joiner, BOM and soft hyphen
_INVISIBLE_CHARS = re.compile("[\u200b-\u200d\ufeff\u00ad]")

_DAY_NAMES = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}

_REFERENCE_KEYS = ("category_id", "amenity_id", "id")


def clean_email(email: Optional[str]) -> str:
    """Strip invisible Unicode characters and surrounding whitespace."""
    if not email:
        return ""
    return _INVISIBLE_CHARS.sub("", email).strip()


def to_location(latitude: Optional[float], longitude: Optional[float]) -> Optional[List[float]]:
    """
    Build a ``[longitude, latitude]`` pair.

    Returns None unless both coordinates are present; a partial pair is
    never produced.
    """
    if latitude is None or longitude is None:
        return None
    return [float(longitude), float(latitude)]


def normalize_day_name(day: Optional[str]) -> str:
    """Expand ``mon``..``sun`` (any case, any length prefix) to full day names."""
    if not day:
        return ""
    key = day.strip().lower()[:3]
    return _DAY_NAMES.get(key, day)


def extract_description(products: Iterable[Mapping[str, Any]]) -> Optional[str]:
    """Return the first product's description text, unless it is blank."""
    first = next(iter(products or ()), None)
    if not isinstance(first, Mapping):
        return None
    description = first.get("description")
    text = description.get("text") if isinstance(description, Mapping) else None
    if isinstance(text, str) and text.strip():
        return text
    return None


def build_rich_text(text: str, max_length: Optional[int] = None) -> Dict[str, Any]:
    """
    Wrap plain text into a minimal rich-text document.

    Structure: root -> paragraph -> text node.
    """
    if max_length is not None and len(text) > max_length:
        text = text[:max_length].rstrip()
    return {
        "root": {
            "type": "root",
            "format": "",
            "indent": 0,
            "version": 1,
            "children": [
                {
                    "type": "paragraph",
                    "format": "",
                    "indent": 0,
                    "version": 1,
                    "children": [
                        {
                            "type": "text",
                            "format": 0,
                            "text": text,
                            "mode": "normal",
                            "style": "",
                            "detail": 0,
                            "version": 1,
                        }
                    ],
                    "direction": "ltr",
                }
            ],
            "direction": "ltr",
        }
    }


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def reference_ids(references: Iterable[Any]) -> List[int]:
    """
    Extract numeric IDs from a reference list.

    Accepts bare ints, numeric strings and objects carrying ``category_id``,
    ``amenity_id`` or ``id``. Anything else is ignored.
    """
    ids: List[int] = []
    for ref in references or ():
        if isinstance(ref, Mapping):
            for key in _REFERENCE_KEYS:
                if key in ref:
                    ref = ref[key]
                    break
            else:
                continue
        ref_id = _as_int(ref)
        if ref_id is not None:
            ids.append(ref_id)
    return ids


def listing_category_ids(categories: Iterable[Any], products: Iterable[Mapping[str, Any]]) -> List[int]:
    """Collect category IDs from the listing itself and its first product."""
    ids = reference_ids(categories)
    first = next(iter(products or ()), None)
    if isinstance(first, Mapping):
        ids.extend(reference_ids(first.get("categories") or []))
    return ids
