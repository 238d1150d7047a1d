"""Application settings and configuration."""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CustomFieldSettings:
    """Defaults for field mapping, orphan aging and migration."""

    include_timestamp: bool = field(
        default_factory=lambda: _env_flag("CUSTOM_FIELDS_INCLUDE_TIMESTAMP", "true")
    )
    show_orphaned_fields: bool = field(
        default_factory=lambda: _env_flag("CUSTOM_FIELDS_SHOW_ORPHANED", "true")
    )
    orphaned_field_max_age: int = field(
        default_factory=lambda: int(os.getenv("CUSTOM_FIELDS_ORPHAN_MAX_AGE_DAYS", "90"))
    )
    auto_migrate: bool = field(
        default_factory=lambda: _env_flag("CUSTOM_FIELDS_AUTO_MIGRATE", "true")
    )
    track_changes: bool = field(
        default_factory=lambda: _env_flag("CUSTOM_FIELDS_TRACK_CHANGES", "true")
    )
    rules_file: Path = field(
        default_factory=lambda: Path(
            os.getenv(
                "CUSTOM_FIELDS_RULES_FILE",
                str(PROJECT_ROOT / "config" / "migration_rules.yaml"),
            )
        )
    )


@dataclass
class DataConfig:
    """Data paths configuration."""

    reports_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("REPORTS_PATH", str(PROJECT_ROOT / "data" / "reports"))
        )
    )


@dataclass
class AppConfig:
    """Application configuration settings."""

    name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Custom Field Engine"))
    version: str = field(default_factory=lambda: os.getenv("APP_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["LOG_FILE"]) if os.getenv("LOG_FILE") else None
    )


@dataclass
class Config:
    """Main configuration container."""

    custom_fields: CustomFieldSettings = field(default_factory=CustomFieldSettings)
    data: DataConfig = field(default_factory=DataConfig)
    app: AppConfig = field(default_factory=AppConfig)


# Global config instance
config = Config()
