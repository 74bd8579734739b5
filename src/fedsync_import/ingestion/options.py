"""Run options for an import, validated up front."""

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from fedsync_import.configs.settings import ImportSettings, get_settings
from fedsync_import.errors import ConfigurationError


class ImportOptions(BaseModel):
    """
    Options for one import run.

    Selective flags are resolved by the caller into the three ``skip_*``
    switches; the orchestrator only looks at those.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    batch_size: int = Field(50, ge=1)
    concurrency: int = Field(5, ge=1)
    skip_categories: bool = False
    skip_events: bool = False
    skip_profiles: bool = False
    dry_run: bool = False

    item_timeout_s: Optional[float] = Field(30.0, gt=0)
    run_deadline_s: Optional[float] = Field(None, gt=0)

    max_title_length: int = Field(200, ge=1)
    max_description_length: int = Field(5000, ge=1)

    error_report_path: Optional[Path] = None
    error_display_limit: int = Field(10, ge=0)

    @classmethod
    def create(cls, **kwargs: Any) -> "ImportOptions":
        """
        Build options, converting schema failures into ConfigurationError.

        Raises:
            ConfigurationError: if any option is out of range or unknown
        """
        try:
            return cls(**kwargs)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(
                f"Invalid import options: {problems}",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

    @classmethod
    def from_settings(
        cls, settings: Optional[ImportSettings] = None, **overrides: Any
    ) -> "ImportOptions":
        """Defaults from settings, with explicit (non-None) overrides on top."""
        settings = settings or get_settings()
        values: dict = {
            "batch_size": settings.BATCH_SIZE,
            "concurrency": settings.MAX_CONCURRENCY,
            "item_timeout_s": settings.ITEM_TIMEOUT_S,
            "run_deadline_s": settings.RUN_DEADLINE_S,
            "max_title_length": settings.MAX_TITLE_LENGTH,
            "max_description_length": settings.MAX_DESCRIPTION_LENGTH,
            "error_report_path": settings.ERROR_LOG_PATH,
            "error_display_limit": settings.ERROR_DISPLAY_LIMIT,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.create(**values)

    @property
    def phases(self) -> list[str]:
        return [
            name
            for name, skipped in (
                ("categories", self.skip_categories),
                ("events", self.skip_events),
                ("profiles", self.skip_profiles),
            )
            if not skipped
        ]


def resolve_phase_flags(
    categories: bool = False,
    events: bool = False,
    profiles: bool = False,
    skip_categories: bool = False,
    skip_events: bool = False,
    skip_profiles: bool = False,
) -> dict[str, bool]:
    """
    Turn CLI selection flags into skip switches.

    When any of ``categories``/``events``/``profiles`` is set, only the
    selected phases run and the skip flags are ignored.
    """
    if categories or events or profiles:
        return {
            "skip_categories": not categories,
            "skip_events": not events,
            "skip_profiles": not profiles,
        }
    return {
        "skip_categories": skip_categories,
        "skip_events": skip_events,
        "skip_profiles": skip_profiles,
    }
