from fedsync_import.configs.config import Config
from fedsync_import.configs.settings import ImportSettings, get_settings

__all__ = ["Config", "ImportSettings", "get_settings"]
