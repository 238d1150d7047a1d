"""
Check flattened entries against the current schema before display.

An entry is kept when its row/column still holds a component and either the
component id is unchanged or the saved component type can still be shown
by the current component type (see TYPE_COMPATIBILITY).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from config.constants import TYPE_COMPATIBILITY
from src.custom_fields.flattened_converter import FlattenedFieldData
from src.custom_fields.types import FieldType, FormComponent, FormSchema


class ValidationReason(str, Enum):
    VALID = "valid"
    ROW_NOT_FOUND = "row_not_found"
    COLUMN_NOT_FOUND = "column_not_found"
    COMPONENT_TYPE_MISMATCH = "component_type_mismatch"


@dataclass
class ValidatedFieldData:
    """A flattened entry with the outcome of its schema check."""
    data: FlattenedFieldData
    is_valid: bool
    validation_reason: ValidationReason
    schema_component: Optional[FormComponent] = None

    @property
    def value(self):
        return self.data.value

    @property
    def row_id(self) -> str:
        return self.data.row_id

    @property
    def column_id(self) -> str:
        return self.data.column_id


@dataclass
class FlattenedValidationResult:
    valid_fields: List[ValidatedFieldData] = field(default_factory=list)
    invalid_fields: List[ValidatedFieldData] = field(default_factory=list)


def _type_name(field_type) -> str:
    if isinstance(field_type, FieldType):
        return field_type.value
    return str(field_type or "").strip().lower()


def are_component_types_compatible(saved_type, schema_type) -> bool:
    """Whether a value saved for ``saved_type`` can be shown by a ``schema_type`` component."""
    saved = _type_name(saved_type)
    current = _type_name(schema_type)
    if saved == current:
        return True
    return current in TYPE_COMPATIBILITY.get(saved, [])


def _build_row_index(schema: FormSchema) -> Dict[str, Dict[str, Optional[FormComponent]]]:
    return {
        row.id: {column.id: column.component for column in row.columns}
        for row in schema.rows
    }


def _validate_single_field(
    entry: FlattenedFieldData,
    row_index: Dict[str, Dict[str, Optional[FormComponent]]],
) -> ValidatedFieldData:
    columns = row_index.get(entry.row_id)
    if columns is None:
        return ValidatedFieldData(entry, False, ValidationReason.ROW_NOT_FOUND)

    component = columns.get(entry.column_id)
    if component is None:
        return ValidatedFieldData(entry, False, ValidationReason.COLUMN_NOT_FOUND)

    if component.id == entry.component_id:
        return ValidatedFieldData(entry, True, ValidationReason.VALID, component)

    # Component was replaced; keep the value if the new type can show it
    if are_component_types_compatible(entry.component_type, component.type):
        return ValidatedFieldData(entry, True, ValidationReason.VALID, component)

    return ValidatedFieldData(entry, False, ValidationReason.COMPONENT_TYPE_MISMATCH, component)


def validate_fields_against_schema(
    flattened_data: Iterable[FlattenedFieldData],
    schema: Optional[FormSchema],
) -> FlattenedValidationResult:
    """
    Split flattened entries into those still displayable and those not.

    With no schema (or one without rows) every entry is invalid with reason
    ROW_NOT_FOUND.
    """
    result = FlattenedValidationResult()

    if schema is None or not schema.rows:
        for entry in flattened_data:
            result.invalid_fields.append(
                ValidatedFieldData(entry, False, ValidationReason.ROW_NOT_FOUND)
            )
        return result

    row_index = _build_row_index(schema)
    for entry in flattened_data:
        validated = _validate_single_field(entry, row_index)
        if validated.is_valid:
            result.valid_fields.append(validated)
        else:
            result.invalid_fields.append(validated)

    return result


def get_valid_fields_for_rendering(
    flattened_data: Iterable[FlattenedFieldData],
    schema: Optional[FormSchema],
) -> List[ValidatedFieldData]:
    return validate_fields_against_schema(flattened_data, schema).valid_fields
