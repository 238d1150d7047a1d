"""YAML Configuration Loader for the custom field engine.

Loads and caches the migration-rule catalogue from YAML with fallback to an
empty catalogue. Rules are returned as validated plain dictionaries; the
engine turns them into MigrationRule objects.

File format (config/migration_rules.yaml)::

    migration_rules:
      - description: Legacy mobile number moved to "Phone Number"
        from:
          type: phone
          label: Mobile            # exact label, or
          label_regex: "^mobile"   # case-insensitive search
        to:
          name: Phone Number       # label of the target field
          type: phone
        transform: identity        # optional, see KNOWN_TRANSFORMS
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from functools import lru_cache
import re
import yaml

from config.logging_config import get_logger
from config.settings import config

logger = get_logger("config_loader")

# Named value transforms a YAML rule may reference
KNOWN_TRANSFORMS = ("identity", "first_item", "wrap_list", "to_string", "join_comma")

_ALLOWED_FROM_KEYS = {"type", "label", "label_regex"}
_ALLOWED_TO_KEYS = {"name", "type"}


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""

    pass


def _load_yaml_file(filepath: Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filepath: Path to the YAML file

    Returns:
        Parsed YAML content as dictionary

    Raises:
        ConfigurationError: If file cannot be loaded
    """
    if not filepath.exists():
        raise ConfigurationError(f"Configuration file not found: {filepath}")

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing {filepath.name}: {e}")
    except IOError as e:
        raise ConfigurationError(f"Error reading {filepath.name}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"{filepath.name} must contain a mapping at top level")
    return data


def _validate_rule_spec(index: int, spec: Any) -> Dict[str, Any]:
    """Check one rule entry and return it normalized."""
    if not isinstance(spec, dict):
        raise ConfigurationError(f"Migration rule #{index} must be a mapping")

    source = spec.get("from") or {}
    target = spec.get("to")
    if not isinstance(source, dict):
        raise ConfigurationError(f"Migration rule #{index}: 'from' must be a mapping")
    if not isinstance(target, dict) or not target.get("name"):
        raise ConfigurationError(f"Migration rule #{index}: 'to.name' is required")

    unknown = (set(source) - _ALLOWED_FROM_KEYS) | (set(target) - _ALLOWED_TO_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Migration rule #{index}: unknown keys {', '.join(sorted(unknown))}"
        )

    if "label_regex" in source:
        try:
            re.compile(source["label_regex"])
        except re.error as e:
            raise ConfigurationError(f"Migration rule #{index}: bad label_regex: {e}")

    transform = spec.get("transform")
    if transform is not None and transform not in KNOWN_TRANSFORMS:
        raise ConfigurationError(
            f"Migration rule #{index}: unknown transform '{transform}' "
            f"(expected one of {', '.join(KNOWN_TRANSFORMS)})"
        )

    return {
        "description": str(spec.get("description", "")),
        "from": dict(source),
        "to": dict(target),
        "transform": transform,
    }


@lru_cache(maxsize=4)
def load_migration_rule_specs(rules_file: Optional[str] = None) -> Tuple[Dict[str, Any], ...]:
    """
    Load migration rule definitions from YAML.

    Args:
        rules_file: Path to the YAML file; settings default if None.

    Returns:
        Tuple of validated rule dictionaries (empty if the file is missing).

    Raises:
        ConfigurationError: If the file exists but is malformed.
    """
    path = Path(rules_file) if rules_file else config.custom_fields.rules_file
    if not path.exists():
        logger.debug(f"No migration rules file at {path}, using built-in rules only")
        return ()

    data = _load_yaml_file(path)
    entries = data.get("migration_rules") or []
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path.name}: 'migration_rules' must be a list")

    specs = tuple(_validate_rule_spec(i, entry) for i, entry in enumerate(entries, start=1))
    logger.info(f"Loaded {len(specs)} migration rule(s) from {path.name}")
    return specs


def clear_config_cache() -> None:
    """Clear all cached configuration data."""
    load_migration_rule_specs.cache_clear()
