"""
Flattened, position-keyed storage of custom field values.

Form renderers key values by ``{rowId}-{columnId}``. For storage each value
is flattened into a self-describing entry::

    {"row-1-col-1-0": {"value": "a@b.com", "rowId": "row-1", "columnId": "col-1-0",
                       "componentId": "cmp-9", "componentType": "email"}}

This is a looser scheme than field identities: entries are later matched
back by row/column and then by component id or a compatible component type.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from config.logging_config import get_logger
from src.custom_fields.schema_mapping import form_value_key
from src.custom_fields.schema_validation import is_empty_value
from src.custom_fields.types import FormColumn, FormComponent, FormRow, FormSchema

logger = get_logger("flattened_converter")


@dataclass
class FlattenedFieldData:
    """One stored value with the slot and component it was entered in."""
    value: Any
    row_id: str
    column_id: str
    component_id: str
    component_type: str

    @staticmethod
    def looks_flattened(data: Any) -> bool:
        """True for a dict carrying the flattened slot keys."""
        return isinstance(data, dict) and all(
            key in data for key in ("rowId", "columnId", "componentId")
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlattenedFieldData":
        return cls(
            value=data.get("value"),
            row_id=str(data.get("rowId", "")),
            column_id=str(data.get("columnId", "")),
            component_id=str(data.get("componentId", "")),
            component_type=str(data.get("componentType", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "rowId": self.row_id,
            "columnId": self.column_id,
            "componentId": self.component_id,
            "componentType": self.component_type,
        }


def index_schema_slots(schema: FormSchema) -> Dict[str, Tuple[FormRow, FormColumn, FormComponent]]:
    """Map ``{rowId}-{columnId}`` to the row, column and component at that slot."""
    return {
        form_value_key(row.id, column.id): (row, column, component)
        for row, column, component in schema.iter_fields()
    }


def convert_to_flattened_field_data(
    form_values: Dict[str, Any],
    schema: Optional[FormSchema],
) -> Dict[str, FlattenedFieldData]:
    """
    Flatten form values for storage.

    Args:
        form_values: Values keyed ``{rowId}-{columnId}``.
        schema: Schema the values were entered against.

    Returns:
        Flattened entries keyed like the input. Empty values and keys that
        do not resolve to a placed component are left out.
    """
    flattened: Dict[str, FlattenedFieldData] = {}
    if schema is None:
        logger.warning("No membership form schema provided for field conversion")
        return flattened

    slots = index_schema_slots(schema)
    for field_key, value in form_values.items():
        if is_empty_value(value):
            continue

        slot = slots.get(field_key)
        if slot is None:
            logger.warning(f"Component not found for field key: {field_key}")
            continue

        row, column, component = slot
        flattened[field_key] = FlattenedFieldData(
            value=value,
            row_id=row.id,
            column_id=column.id,
            component_id=component.id,
            component_type=component.type.value,
        )

    return flattened


def get_component_metadata(
    component_id: str,
    schema: Optional[FormSchema],
) -> Optional[FormComponent]:
    """Copy of the schema component with the given id, or None."""
    if schema is None:
        return None

    for _, _, component in schema.iter_fields():
        if component.id == component_id:
            return replace(component)
    return None
