# src/fedsync_import/configs/config.py
import yaml
from pathlib import Path
from functools import lru_cache


class Config:
    """
    Static configuration for the FedSync importer.
    """

    # This points to src/fedsync_import/configs/
    CONFIG_DIR = Path(__file__).parent.resolve()

    IMPORT_CONFIG_PATH = CONFIG_DIR / "import.yaml"

    @classmethod
    @lru_cache
    def load_import_config(cls) -> dict:
        """Loads the YAML configuration for field names and type tags."""
        if not cls.IMPORT_CONFIG_PATH.exists():
            raise FileNotFoundError(f"Missing config at {cls.IMPORT_CONFIG_PATH}")

        with open(cls.IMPORT_CONFIG_PATH, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def field_names(cls) -> dict:
        """Returns the irregular snake_case -> camelCase rename table."""
        return dict(cls.load_import_config().get("field_names", {}))

    @classmethod
    def skip_fields(cls) -> frozenset:
        """Returns raw keys that are never copied into stored records."""
        return frozenset(cls.load_import_config().get("skip_fields", []))

    @classmethod
    def profile_types(cls) -> frozenset:
        """Returns the accepted profile type tags."""
        return frozenset(cls.load_import_config().get("profile_types", []))

    @classmethod
    def ignored_types(cls) -> frozenset:
        """Returns listing type tags that are skipped entirely."""
        return frozenset(cls.load_import_config().get("ignored_types", []))

    @classmethod
    def sync_source(cls) -> str:
        return cls.load_import_config().get("sync_source", "federator-api")

    @classmethod
    def default_status(cls) -> str:
        return cls.load_import_config().get("default_status", "published")
