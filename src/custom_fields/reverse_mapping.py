"""
Turn stored custom field data back into form values for editing.

Stored data comes in three shapes, all handled here:

- a list of flattened entries
- a dict of flattened entries keyed by form key
- a legacy ``{key: value}`` dict, where the key may be the form key, the
  component id, the column id, ``{rowId}_{columnId}`` or
  ``row-{rowId}-col-{columnId}``

The result is always ``{"{rowId}-{columnId}": value}`` restricted to entries
that still fit the current schema.
"""

from typing import Any, Dict, List, Optional

from config.logging_config import get_logger
from src.custom_fields.field_identification import parse_field_id
from src.custom_fields.field_validation import get_valid_fields_for_rendering
from src.custom_fields.flattened_converter import FlattenedFieldData
from src.custom_fields.schema_mapping import form_value_key
from src.custom_fields.types import FormSchema, SavedFormData

logger = get_logger("reverse_mapping")


def convert_legacy_data_to_flattened(
    legacy_data: Dict[str, Any],
    schema: FormSchema,
) -> List[FlattenedFieldData]:
    """Match legacy keys to schema slots, first matching key format wins per slot."""
    flattened: List[FlattenedFieldData] = []

    for row, column, component in schema.iter_fields():
        possible_keys = [
            form_value_key(row.id, column.id),
            component.id,
            column.id,
            f"{row.id}_{column.id}",
            f"row-{row.id}-col-{column.id}",
        ]
        for key in possible_keys:
            if key and key in legacy_data:
                flattened.append(
                    FlattenedFieldData(
                        value=legacy_data[key],
                        row_id=row.id,
                        column_id=column.id,
                        component_id=component.id,
                        component_type=component.type.value,
                    )
                )
                break

    return flattened


def _to_flattened_list(saved_data: Any, schema: FormSchema) -> List[FlattenedFieldData]:
    if isinstance(saved_data, (list, tuple)):
        entries = []
        for item in saved_data:
            if isinstance(item, FlattenedFieldData):
                entries.append(item)
            elif FlattenedFieldData.looks_flattened(item):
                entries.append(FlattenedFieldData.from_dict(item))
            else:
                logger.debug(f"Skipping unrecognized flattened entry: {item!r}")
        return entries

    if isinstance(saved_data, dict):
        values = list(saved_data.values())
        if any(isinstance(v, FlattenedFieldData) or FlattenedFieldData.looks_flattened(v) for v in values):
            return _to_flattened_list(values, schema)
        return convert_legacy_data_to_flattened(saved_data, schema)

    return []


def convert_flattened_data_to_form_values(
    saved_data: Any,
    schema: Optional[FormSchema],
) -> Dict[str, Any]:
    """
    Form values for stored flattened or legacy data.

    Args:
        saved_data: List or dict of flattened entries, or a legacy dict.
        schema: Current schema.

    Returns:
        ``{rowId}-{columnId}`` -> value for entries valid under the schema.
    """
    if not saved_data or schema is None:
        return {}

    flattened = _to_flattened_list(saved_data, schema)
    return {
        form_value_key(entry.row_id, entry.column_id): entry.value
        for entry in get_valid_fields_for_rendering(flattened, schema)
    }


def _field_key_matches(field_key: str, row_id: str, column_id: str, component_id: str) -> bool:
    parsed = parse_field_id(field_key)
    if parsed is not None and parsed.row_id == row_id and parsed.column_id == column_id:
        return True
    return (
        field_key == form_value_key(row_id, column_id)
        or field_key == component_id
        or field_key == column_id
        or (bool(component_id) and component_id in field_key)
    )


def extract_values_from_saved_form_data(
    saved_form_data: Optional[SavedFormData],
    schema: Optional[FormSchema],
) -> Dict[str, Any]:
    """
    Form values from SavedFormData, matching keys loosely against the schema.

    A key matches a slot when it is an identity for that row/column, the
    form key, the component id, the column id, or contains the component id.
    """
    if saved_form_data is None or not saved_form_data.fields or schema is None:
        return {}

    flattened: List[FlattenedFieldData] = []
    for field_key, saved_value in saved_form_data.fields.items():
        for row, column, component in schema.iter_fields():
            if _field_key_matches(field_key, row.id, column.id, component.id):
                flattened.append(
                    FlattenedFieldData(
                        value=saved_value.value,
                        row_id=row.id,
                        column_id=column.id,
                        component_id=component.id,
                        component_type=component.type.value,
                    )
                )

    return {
        form_value_key(entry.row_id, entry.column_id): entry.value
        for entry in get_valid_fields_for_rendering(flattened, schema)
    }
