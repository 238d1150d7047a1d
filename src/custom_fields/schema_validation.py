"""
Type-aware validation of custom field values.

Field-level checks never raise; they report errors (which make a form
invalid) and warnings (which do not). Each FieldType has exactly one
validator in ``TYPE_VALIDATORS``.

Rules:
    - required and empty (None or "")     -> error, no further checks
    - optional and empty                  -> valid
    - email                               -> error unless local@domain.tld
    - phone                               -> warning unless a plausible number
    - number                              -> error unless a finite number
    - date                                -> error unless a calendar date
    - select / radio                      -> error unless one of the options
    - checkbox / multiselect              -> error listing unknown options
    - file                                -> error on extension or size
    - configured min/max length, pattern  -> error (string values)

At form level, a required schema field with no saved value is a global
error; orphaned saved values only produce a global warning.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from config.constants import (
    DATE_PARSE_FORMATS,
    MAX_FILE_SIZE,
    format_file_size,
    msg_file_too_large,
    msg_invalid_date,
    msg_invalid_email,
    msg_invalid_file_type,
    msg_invalid_number,
    msg_invalid_option,
    msg_invalid_options,
    msg_invalid_phone,
    msg_pattern_mismatch,
    msg_required,
    msg_too_long,
    msg_too_short,
)
from config.logging_config import get_logger
from src.custom_fields.field_identification import get_field_metadata_from_schema
from src.custom_fields.schema_mapping import map_saved_values_to_schema
from src.custom_fields.types import (
    FieldMappingConfig,
    FieldMetadata,
    FieldType,
    FormSchema,
    SavedFormData,
)

logger = get_logger("schema_validation")

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^\+?[1-9]\d{0,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-\(\)]")


# =============================================================================
# RESULT DATACLASSES
# =============================================================================

@dataclass
class FieldValidationResult:
    """Result of validating one value."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)


@dataclass
class FormValidationSummary:
    total_fields: int = 0
    valid_fields: int = 0
    invalid_fields: int = 0
    orphaned_fields: int = 0
    missing_required_fields: int = 0


@dataclass
class FormValidationResult:
    """Result of validating a whole saved record against a schema."""
    is_valid: bool = True
    field_results: Dict[str, FieldValidationResult] = field(default_factory=dict)
    global_errors: List[str] = field(default_factory=list)
    global_warnings: List[str] = field(default_factory=list)
    summary: FormValidationSummary = field(default_factory=FormValidationSummary)

    @property
    def field_errors(self) -> Dict[str, str]:
        """Joined error messages per field id, only for invalid fields."""
        return {
            field_id: ", ".join(result.errors)
            for field_id, result in self.field_results.items()
            if not result.is_valid
        }

    @property
    def field_warnings(self) -> Dict[str, str]:
        return {
            field_id: ", ".join(result.warnings)
            for field_id, result in self.field_results.items()
            if result.warnings
        }


# =============================================================================
# VALUE HELPERS
# =============================================================================

def is_empty_value(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def parse_date_value(value: Any) -> Optional[date]:
    """
    Parse a saved date value.

    Accepts date/datetime objects, ISO 8601 strings and the formats in
    DATE_PARSE_FORMATS. Returns None if the value is not a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in DATE_PARSE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    logger.debug(f"Could not parse date: {text}")
    return None


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _file_name(file_value: Any) -> Optional[str]:
    if isinstance(file_value, dict):
        name = file_value.get("name") or file_value.get("url")
    else:
        name = file_value
    if not isinstance(name, str) or not name:
        return None
    # Stored uploads may be URLs; only the path carries the extension
    if "://" in name:
        return urlparse(name).path or name
    return name


def _matches_accepted_type(file_value: Any, name: str, accepted: List[str]) -> bool:
    suffix = PurePosixPath(name.lower()).suffix
    mime = file_value.get("type", "") if isinstance(file_value, dict) else ""
    for accepted_type in accepted:
        accepted_type = accepted_type.strip().lower()
        if "/" in accepted_type:
            # MIME type such as "image/*" or "application/pdf"
            if accepted_type.endswith("/*"):
                if mime.lower().startswith(accepted_type[:-1]):
                    return True
            elif mime.lower() == accepted_type:
                return True
        elif suffix and suffix == "." + accepted_type.lstrip("."):
            return True
    return False


# =============================================================================
# TYPE VALIDATORS
# =============================================================================

def _validate_no_type_rules(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    pass


def _validate_email(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if not isinstance(value, str) or not EMAIL_REGEX.match(value):
        result.add_error(msg_invalid_email(metadata.label))


def _validate_phone(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        result.add_warning(msg_invalid_phone(metadata.label))
        return
    digits = PHONE_SEPARATORS.sub("", str(value))
    if not PHONE_REGEX.match(digits):
        result.add_warning(msg_invalid_phone(metadata.label))


def _validate_number(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if isinstance(value, bool):
        result.add_error(msg_invalid_number(metadata.label))
        return
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        result.add_error(msg_invalid_number(metadata.label))
        return
    if not math.isfinite(number):
        result.add_error(msg_invalid_number(metadata.label))


def _validate_date(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if parse_date_value(value) is None:
        result.add_error(msg_invalid_date(metadata.label))


def _validate_single_choice(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if not metadata.options:
        return
    if any(v not in metadata.options for v in _as_list(value)):
        result.add_error(msg_invalid_option(metadata.label))


def _validate_multi_choice(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    if not metadata.options:
        return
    invalid = [v for v in _as_list(value) if v not in metadata.options]
    if invalid:
        result.add_error(msg_invalid_options(metadata.label, invalid))


def _validate_file(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    settings = metadata.file_settings
    accepted = settings.accepted_file_types if settings else []
    max_size = (settings.max_file_size if settings else None) or MAX_FILE_SIZE

    bad_type = False
    too_large = False
    for file_value in _as_list(value):
        name = _file_name(file_value)
        if accepted and name and not _matches_accepted_type(file_value, name, accepted):
            bad_type = True
        size = file_value.get("size") if isinstance(file_value, dict) else None
        if isinstance(size, (int, float)) and not isinstance(size, bool) and size > max_size:
            too_large = True

    if bad_type:
        result.add_error(msg_invalid_file_type(metadata.label, accepted))
    if too_large:
        result.add_error(msg_file_too_large(metadata.label, format_file_size(max_size)))


TYPE_VALIDATORS: Dict[FieldType, Callable[[Any, FieldMetadata, FieldValidationResult], None]] = {
    FieldType.TEXT: _validate_no_type_rules,
    FieldType.TEXTAREA: _validate_no_type_rules,
    FieldType.EMAIL: _validate_email,
    FieldType.PHONE: _validate_phone,
    FieldType.NUMBER: _validate_number,
    FieldType.DATE: _validate_date,
    FieldType.SELECT: _validate_single_choice,
    FieldType.RADIO: _validate_single_choice,
    FieldType.CHECKBOX: _validate_multi_choice,
    FieldType.MULTISELECT: _validate_multi_choice,
    FieldType.FILE: _validate_file,
    FieldType.UNKNOWN: _validate_no_type_rules,
}


def _validate_configured_rules(value: Any, metadata: FieldMetadata, result: FieldValidationResult) -> None:
    rules = metadata.validation
    if rules is None or not isinstance(value, str):
        return

    if rules.min_length is not None and len(value) < rules.min_length:
        result.add_error(msg_too_short(metadata.label, rules.min_length))
    if rules.max_length is not None and len(value) > rules.max_length:
        result.add_error(msg_too_long(metadata.label, rules.max_length))
    if rules.pattern:
        try:
            if re.fullmatch(rules.pattern, value) is None:
                result.add_error(msg_pattern_mismatch(metadata.label))
        except re.error as e:
            logger.warning(f"Ignoring invalid pattern on {metadata.field_id}: {e}")


# =============================================================================
# PUBLIC API
# =============================================================================

def validate_field_value(value: Any, metadata: FieldMetadata) -> FieldValidationResult:
    """
    Validate one value against the metadata of its field.

    Args:
        value: Saved or submitted value.
        metadata: Current metadata of the field.

    Returns:
        FieldValidationResult with errors and warnings.
    """
    result = FieldValidationResult()

    if is_empty_value(value):
        if metadata.required:
            result.add_error(msg_required(metadata.label))
        return result

    TYPE_VALIDATORS[FieldType.parse(metadata.type)](value, metadata, result)
    _validate_configured_rules(value, metadata, result)
    return result


def validate_saved_form_data(
    saved_data: SavedFormData,
    current_schema: Optional[FormSchema],
    config: Optional[FieldMappingConfig] = None,
    now: Optional[int] = None,
) -> FormValidationResult:
    """
    Validate a saved record against the current schema.

    Mapped fields are validated against their current metadata. Required
    schema fields with no saved value make the form invalid through a
    global error. Orphaned values only add a global warning.

    Args:
        saved_data: Previously saved record data.
        current_schema: Schema in effect now.
        config: Mapping options; settings defaults if None.
        now: Reference time in ms for orphan aging.

    Returns:
        FormValidationResult keyed by field id.
    """
    mapping = map_saved_values_to_schema(saved_data, current_schema, config, now)
    form_result = FormValidationResult()
    summary = form_result.summary
    summary.total_fields = len(mapping.mapped) + len(mapping.orphaned)
    summary.orphaned_fields = len(mapping.orphaned)

    for mapped in mapping.mapped:
        field_result = validate_field_value(mapped.value, mapped.current_metadata)
        form_result.field_results[mapped.field_id] = field_result
        if field_result.is_valid:
            summary.valid_fields += 1
        else:
            form_result.is_valid = False
            summary.invalid_fields += 1

    if mapping.orphaned:
        form_result.global_warnings.append(
            f"{len(mapping.orphaned)} field(s) from saved data no longer exist in the current form"
        )

    required_missing = [m for m in mapping.missing if m.current_metadata.required]
    if required_missing:
        summary.missing_required_fields = len(required_missing)
        form_result.is_valid = False
        labels = ", ".join(m.current_metadata.label for m in required_missing)
        form_result.global_errors.append(
            f"{len(required_missing)} required field(s) are missing values: {labels}"
        )

    logger.debug(
        f"Validated {summary.total_fields} fields: {summary.invalid_fields} invalid, "
        f"{summary.orphaned_fields} orphaned, {summary.missing_required_fields} required missing"
    )
    return form_result


def validate_saved_field(
    saved_data: SavedFormData,
    field_id: str,
    current_schema: Optional[FormSchema],
) -> FieldValidationResult:
    """Validate a single saved value against its current schema field."""
    saved_value = saved_data.fields.get(field_id)
    if saved_value is None:
        return FieldValidationResult()

    metadata = get_field_metadata_from_schema(field_id, current_schema)
    if metadata is None:
        result = FieldValidationResult()
        result.add_error("Field not found in schema")
        return result

    return validate_field_value(saved_value.value, metadata)
