"""
Reconcile saved field values with the current schema.

Every saved value is classified as mapped (its position still exists),
orphaned (position gone, value recent enough to show) or dropped (position
gone and older than the orphan age window). Schema fields without a saved
value are reported as missing.

Usage:
    from src.custom_fields.schema_mapping import map_saved_values_to_schema

    result = map_saved_values_to_schema(saved_data, schema)
    for mapped in result.mapped:
        if mapped.saved_metadata and mapped.saved_metadata.label != mapped.current_metadata.label:
            ...  # label changed since the value was saved

Known limitation: nothing prevents two saved identities from sharing a
position key (a schema author reusing row/column ids). Both are reported as
mapped, and when converted to form values the last one processed wins.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from config.constants import MS_PER_DAY
from config.logging_config import get_logger
from src.custom_fields.field_identification import (
    create_schema_field_map,
    current_time_ms,
    parse_field_id,
)
from src.custom_fields.types import (
    FieldMappingConfig,
    FieldMappingResult,
    FormSchema,
    MappedField,
    MissingField,
    OrphanedField,
    SavedFieldValue,
    SavedFormData,
)

logger = get_logger("schema_mapping")


@dataclass
class MappingStats:
    """Counts describing how well saved data fits the current schema."""
    total_saved: int = 0
    mapped: int = 0
    orphaned: int = 0
    missing: int = 0
    mapping_rate: float = 0.0  # percent of saved fields that mapped


def form_value_key(row_id: str, column_id: str) -> str:
    """Key used by form renderers for a row/column slot."""
    return f"{row_id}-{column_id}"


def field_age_days(saved_value: SavedFieldValue, now: int) -> float:
    return (now - saved_value.saved_at) / MS_PER_DAY


def map_saved_values_to_schema(
    saved_data: SavedFormData,
    current_schema: Optional[FormSchema],
    config: Optional[FieldMappingConfig] = None,
    now: Optional[int] = None,
) -> FieldMappingResult:
    """
    Classify saved values against the current schema.

    Args:
        saved_data: Previously saved record data.
        current_schema: Schema in effect now.
        config: Orphan visibility and age window; settings defaults if None.
        now: Reference time in ms (current time if None).

    Returns:
        FieldMappingResult with mapped, orphaned and missing entries.
    """
    config = config or FieldMappingConfig.from_settings()
    now = current_time_ms() if now is None else now

    current_field_map = create_schema_field_map(current_schema, config)
    result = FieldMappingResult()
    matched_positions: Set[str] = set()

    for field_id, saved_value in saved_data.fields.items():
        parsed = parse_field_id(field_id)
        if parsed is None:
            logger.debug(f"Malformed field id {field_id!r}, treating as orphaned")
            result.orphaned.append(
                OrphanedField(field_id, saved_value.value, saved_value.metadata)
            )
            continue

        current_metadata = current_field_map.get(parsed.position_key)
        if current_metadata is not None:
            result.mapped.append(
                MappedField(
                    field_id=field_id,
                    value=saved_value.value,
                    current_metadata=current_metadata,
                    saved_metadata=saved_value.metadata,
                )
            )
            matched_positions.add(parsed.position_key)
            continue

        age = field_age_days(saved_value, now)
        if config.show_orphaned_fields and age <= config.orphaned_field_max_age:
            result.orphaned.append(
                OrphanedField(field_id, saved_value.value, saved_value.metadata)
            )
        else:
            logger.debug(f"Dropping stale field {field_id} ({age:.1f} days old)")

    for position_key, metadata in current_field_map.items():
        if position_key not in matched_positions:
            result.missing.append(MissingField(metadata.field_id, metadata))

    return result


def create_saved_form_data(
    values: Dict[str, Any],
    schema: FormSchema,
    schema_version: Optional[int] = None,
    config: Optional[FieldMappingConfig] = None,
    now: Optional[int] = None,
) -> SavedFormData:
    """
    Build SavedFormData from form values keyed ``{rowId}-{columnId}``.

    Empty values (None or "") are not stored.
    """
    now = current_time_ms() if now is None else now
    fields: Dict[str, SavedFieldValue] = {}

    for metadata in create_schema_field_map(schema, config).values():
        value = values.get(form_value_key(metadata.row_id, metadata.column_id))
        if value is None or value == "":
            continue
        fields[metadata.field_id] = SavedFieldValue(
            field_id=metadata.field_id,
            value=value,
            metadata=metadata,
            saved_at=now,
        )

    return SavedFormData(
        schema_id=schema.id,
        schema_version=schema_version or now,
        fields=fields,
        saved_at=now,
    )


def convert_saved_data_to_form_values(
    saved_data: SavedFormData,
    current_schema: Optional[FormSchema],
    config: Optional[FieldMappingConfig] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Form values (``{rowId}-{columnId}`` -> value) for every mapped field."""
    mapping = map_saved_values_to_schema(saved_data, current_schema, config, now)
    form_values: Dict[str, Any] = {}
    for mapped in mapping.mapped:
        metadata = mapped.current_metadata
        form_values[form_value_key(metadata.row_id, metadata.column_id)] = mapped.value
    return form_values


def filter_valid_fields(
    saved_data: SavedFormData,
    current_schema: Optional[FormSchema],
) -> SavedFormData:
    """Copy of saved_data keeping only fields whose position still exists."""
    current_field_map = create_schema_field_map(current_schema)
    kept = {}
    for field_id, saved_value in saved_data.fields.items():
        parsed = parse_field_id(field_id)
        if parsed is not None and parsed.position_key in current_field_map:
            kept[field_id] = saved_value

    return SavedFormData(
        schema_id=saved_data.schema_id,
        schema_version=saved_data.schema_version,
        fields=kept,
        saved_at=saved_data.saved_at,
    )


def get_mapping_stats(
    saved_data: SavedFormData,
    mapping_result: FieldMappingResult,
) -> MappingStats:
    total = len(saved_data.fields)
    mapped = len(mapping_result.mapped)
    return MappingStats(
        total_saved=total,
        mapped=mapped,
        orphaned=len(mapping_result.orphaned),
        missing=len(mapping_result.missing),
        mapping_rate=(mapped / total) * 100 if total > 0 else 0.0,
    )
