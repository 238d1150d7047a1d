"""
Persistent field identity and schema field map.

A field identity has the form ``{schemaId}_{rowId}_{columnId}_{timestamp}``.
Only the first three segments (the position key) decide whether a saved value
still belongs to a schema field; the timestamp marks when the identity was
created and keeps identities distinct.

Usage:
    from src.custom_fields.field_identification import (
        generate_field_id, parse_field_id, create_schema_field_map,
    )

    field_id = generate_field_id("S1", "r1", "c1", 1000)   # "S1_r1_c1_1000"
    identity = parse_field_id(field_id)                     # FieldIdentity
    field_map = create_schema_field_map(schema)             # {"S1_r1_c1": FieldMetadata}
"""

import re
import time
from typing import Dict, Optional

from config.constants import DEFAULT_FIELD_LABEL, FIELD_ID_SEGMENTS, FIELD_ID_SEPARATOR
from config.logging_config import get_logger
from src.custom_fields.types import (
    FieldIdentity,
    FieldMappingConfig,
    FieldMetadata,
    FormComponent,
    FormSchema,
)

logger = get_logger("field_identification")

_TIMESTAMP_RE = re.compile(r"-?[0-9]+")


def current_time_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def generate_field_id(
    schema_id: str,
    row_id: str,
    column_id: str,
    timestamp: Optional[int] = None,
) -> str:
    """
    Build a field identity string.

    Args:
        schema_id: Owning schema identifier.
        row_id: Row identifier within the schema.
        column_id: Column identifier within the row.
        timestamp: Creation marker in ms; current time when omitted.

    Returns:
        Identity of the form ``schemaId_rowId_columnId_timestamp``.
    """
    ts = current_time_ms() if timestamp is None else int(timestamp)
    return str(FieldIdentity(str(schema_id), str(row_id), str(column_id), ts))


def parse_field_id(field_id: str) -> Optional[FieldIdentity]:
    """
    Split an identity into its components.

    Returns None for anything that is not exactly four non-empty segments
    ending in an integer. Never raises.
    """
    if not isinstance(field_id, str):
        return None

    parts = field_id.split(FIELD_ID_SEPARATOR)
    if len(parts) != FIELD_ID_SEGMENTS or not all(parts):
        return None

    schema_id, row_id, column_id, timestamp_str = parts
    if not _TIMESTAMP_RE.fullmatch(timestamp_str):
        return None

    return FieldIdentity(schema_id, row_id, column_id, int(timestamp_str))


def make_position_key(schema_id: str, row_id: str, column_id: str) -> str:
    return FIELD_ID_SEPARATOR.join((schema_id, row_id, column_id))


def extract_field_metadata(
    component: FormComponent,
    schema_id: str,
    row_id: str,
    column_id: str,
    field_id: Optional[str] = None,
) -> FieldMetadata:
    """
    Project a schema component into FieldMetadata.

    Args:
        component: Field definition from the schema.
        schema_id: Owning schema identifier.
        row_id: Row holding the component.
        column_id: Column holding the component.
        field_id: Existing identity to tag the metadata with; a new one is
            generated when omitted.

    Returns:
        FieldMetadata with label defaulted to "Untitled Field" and required
        defaulted to False.
    """
    if field_id is None:
        created_at = current_time_ms()
        field_id = generate_field_id(schema_id, row_id, column_id, created_at)
    else:
        parsed = parse_field_id(field_id)
        created_at = parsed.timestamp if parsed else current_time_ms()

    return FieldMetadata(
        field_id=field_id,
        label=component.label or DEFAULT_FIELD_LABEL,
        type=component.type,
        required=bool(component.required),
        schema_id=schema_id,
        row_id=row_id,
        column_id=column_id,
        created_at=created_at,
        options=list(component.options) if component.options is not None else None,
        date_format=component.date_format,
        file_settings=component.file_settings,
        validation=component.validation,
    )


def create_schema_field_map(
    schema: Optional[FormSchema],
    config: Optional[FieldMappingConfig] = None,
) -> Dict[str, FieldMetadata]:
    """
    Index every placed component of a schema by position key.

    Args:
        schema: Current form schema. None or a schema without rows yields
            an empty map.
        config: With include_timestamp False the generated identities use a
            creation marker of 0, which makes them deterministic.

    Returns:
        Ordered dict of ``schemaId_rowId_columnId`` -> FieldMetadata.
    """
    field_map: Dict[str, FieldMetadata] = {}
    if schema is None or not schema.rows:
        return field_map

    include_timestamp = config.include_timestamp if config is not None else True
    timestamp = current_time_ms() if include_timestamp else 0

    for row, column, component in schema.iter_fields():
        field_id = generate_field_id(schema.id, row.id, column.id, timestamp)
        metadata = extract_field_metadata(component, schema.id, row.id, column.id, field_id)
        field_map[make_position_key(schema.id, row.id, column.id)] = metadata

    logger.debug(f"Schema {schema.id}: {len(field_map)} fields indexed")
    return field_map


def field_exists_in_schema(field_id: str, schema: Optional[FormSchema]) -> bool:
    """Check whether an identity points at a placed component of the schema."""
    return get_field_metadata_from_schema(field_id, schema) is not None


def get_field_metadata_from_schema(
    field_id: str,
    schema: Optional[FormSchema],
) -> Optional[FieldMetadata]:
    """
    Current metadata for an identity, keeping the identity itself.

    Returns None when the identity is malformed, belongs to another schema,
    or its row/column no longer holds a component.
    """
    parsed = parse_field_id(field_id)
    if parsed is None or schema is None or parsed.schema_id != schema.id:
        return None

    for row, column, component in schema.iter_fields():
        if row.id == parsed.row_id and column.id == parsed.column_id:
            return extract_field_metadata(component, schema.id, row.id, column.id, field_id)
    return None


def find_field_by_label(
    schema: Optional[FormSchema],
    label: str,
    timestamp: Optional[int] = None,
) -> Optional[FieldMetadata]:
    """First schema field (row/column order) whose label equals ``label`` exactly."""
    if schema is None:
        return None

    for row, column, component in schema.iter_fields():
        if component.label == label:
            field_id = generate_field_id(schema.id, row.id, column.id, timestamp)
            return extract_field_metadata(component, schema.id, row.id, column.id, field_id)
    return None
