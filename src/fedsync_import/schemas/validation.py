"""
Schema validation entry points.

Every ``validate_*`` function returns a :class:`ValidationResult` instead of
raising: a shape mismatch in feed data is an expected outcome, reported as
structured field-level issues. Only programmer errors (passing a model class
that is not a pydantic model, for instance) raise.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from fedsync_import.schemas.source import (
    SourceCategory,
    SourceCategoryGroup,
    SourceEvent,
    SourceProfile,
)
from fedsync_import.schemas.transformed import (
    TransformedCategory,
    TransformedEvent,
    TransformedProfile,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

DEFAULT_MAX_TITLE_LENGTH = 200


@dataclass(frozen=True)
class FieldIssue:
    """A single field-level validation diagnostic."""

    loc: str
    message: str
    kind: str = "value_error"

    def to_dict(self) -> Dict[str, str]:
        return {"loc": self.loc, "message": self.message, "kind": self.kind}

    def __str__(self) -> str:
        return f"{self.loc or '<root>'}: {self.message}"


@dataclass
class ValidationResult(Generic[T]):
    """Outcome of validating one record."""

    valid: bool
    value: Optional[T] = None
    issues: List[FieldIssue] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    @property
    def messages(self) -> List[str]:
        return [str(i) for i in self.issues]

    @classmethod
    def ok(cls, value: T) -> "ValidationResult[T]":
        return cls(valid=True, value=value)

    @classmethod
    def fail(cls, issues: List[FieldIssue]) -> "ValidationResult[T]":
        return cls(valid=False, issues=list(issues))


def issues_from_pydantic(error: PydanticValidationError) -> List[FieldIssue]:
    """Convert a pydantic error into field issues with dotted locations."""
    issues = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        issues.append(
            FieldIssue(loc=loc, message=err.get("msg", ""), kind=err.get("type", ""))
        )
    return issues


def validate_model(model_cls: Type[M], data: Any) -> ValidationResult[M]:
    """
    Validate arbitrary data against a pydantic model.

    Args:
        model_cls: Pydantic model class to validate against
        data: Candidate record (usually a dict parsed from JSON)

    Returns:
        ValidationResult carrying the parsed model or the issues found
    """
    if not (isinstance(model_cls, type) and issubclass(model_cls, BaseModel)):
        raise TypeError(f"{model_cls!r} is not a pydantic model")
    try:
        return ValidationResult.ok(model_cls.model_validate(data))
    except PydanticValidationError as e:
        return ValidationResult.fail(issues_from_pydantic(e))


# ============================================================================
# SOURCE VALIDATORS
# ============================================================================


def validate_source_category(data: Any) -> ValidationResult[SourceCategory]:
    return validate_model(SourceCategory, data)


def validate_source_group(data: Any) -> ValidationResult[SourceCategoryGroup]:
    return validate_model(SourceCategoryGroup, data)


def validate_source_event(data: Any) -> ValidationResult[SourceEvent]:
    return validate_model(SourceEvent, data)


def validate_source_profile(data: Any) -> ValidationResult[SourceProfile]:
    return validate_model(SourceProfile, data)


# ============================================================================
# TRANSFORMED VALIDATORS
# ============================================================================


def _check_title_length(
    result: ValidationResult, data: Any, max_title_length: int
) -> ValidationResult:
    title = data.get("title") if isinstance(data, dict) else None
    if isinstance(title, str) and len(title) > max_title_length:
        issue = FieldIssue(
            loc="title",
            message=f"Title exceeds {max_title_length} characters ({len(title)})",
            kind="string_too_long",
        )
        return ValidationResult.fail(list(result.issues) + [issue])
    return result


def validate_transformed_category(
    data: Any, max_title_length: int = DEFAULT_MAX_TITLE_LENGTH
) -> ValidationResult[TransformedCategory]:
    result = validate_model(TransformedCategory, data)
    return _check_title_length(result, data, max_title_length)


def validate_transformed_event(
    data: Any, max_title_length: int = DEFAULT_MAX_TITLE_LENGTH
) -> ValidationResult[TransformedEvent]:
    result = validate_model(TransformedEvent, data)
    return _check_title_length(result, data, max_title_length)


def validate_transformed_profile(
    data: Any, max_title_length: int = DEFAULT_MAX_TITLE_LENGTH
) -> ValidationResult[TransformedProfile]:
    result = validate_model(TransformedProfile, data)
    return _check_title_length(result, data, max_title_length)
