"""Configuration module for the custom field engine.

Defaults come from environment variables (see settings.py); organization
specific migration rules come from config/migration_rules.yaml.
"""

from .settings import config, CustomFieldSettings, DataConfig, AppConfig, Config
from .constants import (
    # Identity
    FIELD_ID_SEPARATOR,
    FIELD_ID_SEGMENTS,
    DEFAULT_FIELD_LABEL,
    MS_PER_DAY,
    # Field types
    TYPE_COMPATIBILITY,
    # Files and dates
    MAX_FILE_SIZE,
    DATE_PARSE_FORMATS,
    # Helper functions
    format_file_size,
)
from .config_loader import (
    ConfigurationError,
    KNOWN_TRANSFORMS,
    load_migration_rule_specs,
    clear_config_cache,
)

__all__ = [
    # Settings
    "config",
    "CustomFieldSettings",
    "DataConfig",
    "AppConfig",
    "Config",
    # Constants
    "FIELD_ID_SEPARATOR",
    "FIELD_ID_SEGMENTS",
    "DEFAULT_FIELD_LABEL",
    "MS_PER_DAY",
    "TYPE_COMPATIBILITY",
    "MAX_FILE_SIZE",
    "DATE_PARSE_FORMATS",
    "format_file_size",
    # Config loader
    "ConfigurationError",
    "KNOWN_TRANSFORMS",
    "load_migration_rule_specs",
    "clear_config_cache",
]
