"""Pytest configuration and fixtures for custom field engine tests."""

import pytest

from config.constants import MS_PER_DAY
from src.custom_fields.types import (
    FieldMetadata,
    FieldType,
    FormSchema,
    SavedFieldValue,
    SavedFormData,
)

# Fixed reference time (2023-11-14T22:13:20Z)
NOW = 1_700_000_000_000


@pytest.fixture
def now():
    """Fixed reference time in ms."""
    return NOW


@pytest.fixture
def days_ago():
    """Timestamp the given number of days before NOW."""
    def _days_ago(days: float) -> int:
        return int(NOW - days * MS_PER_DAY)
    return _days_ago


@pytest.fixture
def schema_dict():
    """Membership form schema as stored by the form builder."""
    return {
        "id": "S1",
        "name": "Membership Form",
        "rows": [
            {
                "id": "r1",
                "columns": [
                    {"id": "c1", "component": {"id": "cmp-email", "type": "email", "label": "Email", "required": True}},
                    {"id": "c2", "component": {"id": "cmp-name", "type": "text", "label": "Full Name"}},
                ],
            },
            {
                "id": "r2",
                "columns": [
                    {
                        "id": "c1",
                        "component": {
                            "id": "cmp-color",
                            "type": "select",
                            "label": "Favorite Color",
                            "options": ["red", "green", "blue"],
                        },
                    },
                    {
                        "id": "c2",
                        "component": {
                            "id": "cmp-ministries",
                            "type": "checkbox",
                            "label": "Ministries",
                            "options": [{"label": "Choir", "value": "Choir"}, "Ushers", "Youth"],
                        },
                    },
                ],
            },
            {
                "id": "r3",
                "columns": [
                    {"id": "c1", "component": {"id": "cmp-age", "type": "number", "label": "Age"}},
                    {"id": "c2", "component": {"id": "cmp-birthday", "type": "date", "label": "Birthday", "dateFormat": "PPP"}},
                    {"id": "c3", "component": None},
                ],
            },
        ],
    }


@pytest.fixture
def schema(schema_dict):
    """Parsed membership form schema S1."""
    return FormSchema.from_dict(schema_dict)


@pytest.fixture
def make_metadata():
    """Factory for FieldMetadata snapshots."""
    def _make(
        field_id: str,
        label: str = "Field",
        field_type: FieldType = FieldType.TEXT,
        required: bool = False,
        options=None,
    ) -> FieldMetadata:
        schema_id, row_id, column_id, created_at = field_id.split("_")
        return FieldMetadata(
            field_id=field_id,
            label=label,
            type=field_type,
            required=required,
            schema_id=schema_id,
            row_id=row_id,
            column_id=column_id,
            created_at=int(created_at),
            options=options,
        )
    return _make


@pytest.fixture
def make_saved():
    """Factory for SavedFormData from (field_id, value, metadata, saved_at) tuples."""
    def _make(entries, schema_id: str = "S1", saved_at: int = NOW) -> SavedFormData:
        fields = {}
        for entry in entries:
            field_id, value, metadata = entry[:3]
            entry_saved_at = entry[3] if len(entry) > 3 else saved_at
            fields[field_id] = SavedFieldValue(
                field_id=field_id,
                value=value,
                metadata=metadata,
                saved_at=entry_saved_at,
            )
        return SavedFormData(
            schema_id=schema_id,
            schema_version=saved_at,
            fields=fields,
            saved_at=saved_at,
        )
    return _make
