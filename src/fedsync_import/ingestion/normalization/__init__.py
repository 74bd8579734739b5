from fedsync_import.ingestion.normalization.field_mapper import (
    FieldMapper,
    create_field_mapper_from_config,
    snake_to_camel,
)
from fedsync_import.ingestion.normalization.normalizers import (
    build_rich_text,
    clean_email,
    extract_description,
    listing_category_ids,
    normalize_day_name,
    reference_ids,
    to_location,
)

__all__ = [
    "FieldMapper",
    "build_rich_text",
    "clean_email",
    "create_field_mapper_from_config",
    "extract_description",
    "listing_category_ids",
    "normalize_day_name",
    "reference_ids",
    "snake_to_camel",
    "to_location",
]
