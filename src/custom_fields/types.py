"""
Data model for custom form fields.

Schemas, field metadata and saved values are plain dataclasses. Each persisted
structure has ``from_dict`` / ``to_dict`` helpers that read and write the
camelCase JSON shape stored alongside member records, e.g.::

    {
        "schemaId": "S1",
        "schemaVersion": 1700000000000,
        "savedAt": 1700000000000,
        "fields": {
            "S1_r1_c1_1000": {
                "fieldId": "S1_r1_c1_1000",
                "value": "a@b.com",
                "savedAt": 1700000000000,
                "metadata": {"fieldId": "S1_r1_c1_1000", "label": "Email", ...}
            }
        }
    }

All timestamps are integer milliseconds since the Unix epoch.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Union

from config.constants import DEFAULT_FIELD_LABEL, FIELD_ID_SEPARATOR
from config.settings import CustomFieldSettings, config as app_config


# =============================================================================
# ENUMS
# =============================================================================

class FieldType(str, Enum):
    """Closed set of field kinds the form builder can produce."""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    FILE = "file"
    TEXTAREA = "textarea"
    MULTISELECT = "multiselect"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "FieldType":
        """Map a stored type string to a FieldType, UNKNOWN if unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ChangeType(str, Enum):
    """Kinds of drift between saved data and the current schema."""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in data (camelCase or snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


# =============================================================================
# SCHEMA
# =============================================================================

@dataclass
class FileSettings:
    """Upload constraints for file fields."""
    accepted_file_types: List[str] = field(default_factory=list)
    dropzone_text: Optional[str] = None
    max_file_size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FileSettings"]:
        if not data:
            return None
        return cls(
            accepted_file_types=list(_pick(data, "acceptedFileTypes", "accepted_file_types", default=[]) or []),
            dropzone_text=_pick(data, "dropzoneText", "dropzone_text"),
            max_file_size=_pick(data, "maxFileSize", "max_file_size"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"acceptedFileTypes": list(self.accepted_file_types)}
        if self.dropzone_text is not None:
            result["dropzoneText"] = self.dropzone_text
        if self.max_file_size is not None:
            result["maxFileSize"] = self.max_file_size
        return result


@dataclass
class ValidationRules:
    """Optional text constraints configured on a component."""
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ValidationRules"]:
        if not data:
            return None
        return cls(
            min_length=_pick(data, "min_length", "minLength"),
            max_length=_pick(data, "max_length", "maxLength"),
            pattern=data.get("pattern"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("min_length", self.min_length),
                ("max_length", self.max_length),
                ("pattern", self.pattern),
            )
            if value is not None
        }


def _normalize_options(raw: Any) -> Optional[List[str]]:
    if raw is None:
        return None
    options = []
    for item in raw:
        # Builder may store {"label": ..., "value": ...} pairs
        if isinstance(item, dict):
            options.append(item.get("value", item.get("label")))
        else:
            options.append(item)
    return options


@dataclass
class FormComponent:
    """A field definition placed in a schema column."""
    id: str
    type: FieldType
    label: Optional[str] = None
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    date_format: Optional[str] = None
    file_settings: Optional[FileSettings] = None
    validation: Optional[ValidationRules] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormComponent":
        return cls(
            id=str(data.get("id", "")),
            type=FieldType.parse(data.get("type")),
            label=data.get("label"),
            required=bool(data.get("required", False)),
            options=_normalize_options(data.get("options")),
            placeholder=data.get("placeholder"),
            date_format=_pick(data, "dateFormat", "date_format"),
            file_settings=FileSettings.from_dict(_pick(data, "fileSettings", "file_settings")),
            validation=ValidationRules.from_dict(data.get("validation")),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "required": self.required,
        }
        if self.options is not None:
            result["options"] = list(self.options)
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        if self.date_format is not None:
            result["dateFormat"] = self.date_format
        if self.file_settings is not None:
            result["fileSettings"] = self.file_settings.to_dict()
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        return result


@dataclass
class FormColumn:
    """A column slot; empty when no component has been placed."""
    id: str
    component: Optional[FormComponent] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormColumn":
        component = data.get("component")
        return cls(
            id=str(data.get("id", "")),
            component=FormComponent.from_dict(component) if component else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "component": self.component.to_dict() if self.component else None,
        }


@dataclass
class FormRow:
    """An ordered row of columns."""
    id: str
    columns: List[FormColumn] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormRow":
        return cls(
            id=str(data.get("id", "")),
            columns=[FormColumn.from_dict(c) for c in data.get("columns") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "columns": [c.to_dict() for c in self.columns]}


@dataclass
class FormSchema:
    """The administrator-editable membership form definition."""
    id: str
    rows: List[FormRow] = field(default_factory=list)
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormSchema":
        return cls(
            id=str(data.get("id", "")),
            rows=[FormRow.from_dict(r) for r in data.get("rows") or []],
            name=data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "rows": [r.to_dict() for r in self.rows]}
        if self.name is not None:
            result["name"] = self.name
        return result

    def iter_fields(self):
        """Yield (row, column, component) for every placed component, in order."""
        for row in self.rows:
            for column in row.columns:
                if column.component is not None:
                    yield row, column, column.component


# =============================================================================
# IDENTITY AND METADATA
# =============================================================================

@dataclass(frozen=True)
class FieldIdentity:
    """Parsed field identity. Matching uses position_key; timestamp is a creation marker."""
    schema_id: str
    row_id: str
    column_id: str
    timestamp: int

    @property
    def position_key(self) -> str:
        return FIELD_ID_SEPARATOR.join((self.schema_id, self.row_id, self.column_id))

    def __str__(self) -> str:
        return f"{self.position_key}{FIELD_ID_SEPARATOR}{self.timestamp}"


@dataclass
class FieldMetadata:
    """Snapshot of a field definition, tagged with its identity and position."""
    field_id: str
    label: str
    type: FieldType
    required: bool
    schema_id: str
    row_id: str
    column_id: str
    created_at: int
    options: Optional[List[str]] = None
    date_format: Optional[str] = None
    file_settings: Optional[FileSettings] = None
    validation: Optional[ValidationRules] = None

    @property
    def position_key(self) -> str:
        return FIELD_ID_SEPARATOR.join((self.schema_id, self.row_id, self.column_id))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FieldMetadata"]:
        if not data:
            return None
        return cls(
            field_id=str(_pick(data, "fieldId", "field_id", default="")),
            label=data.get("label") or DEFAULT_FIELD_LABEL,
            type=FieldType.parse(data.get("type")),
            required=bool(data.get("required", False)),
            schema_id=str(_pick(data, "schemaId", "schema_id", default="")),
            row_id=str(_pick(data, "rowId", "row_id", default="")),
            column_id=str(_pick(data, "columnId", "column_id", default="")),
            created_at=int(_pick(data, "createdAt", "created_at", default=0) or 0),
            options=_normalize_options(data.get("options")),
            date_format=_pick(data, "dateFormat", "date_format"),
            file_settings=FileSettings.from_dict(_pick(data, "fileSettings", "file_settings")),
            validation=ValidationRules.from_dict(data.get("validation")),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "fieldId": self.field_id,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "schemaId": self.schema_id,
            "rowId": self.row_id,
            "columnId": self.column_id,
            "createdAt": self.created_at,
        }
        if self.options is not None:
            result["options"] = list(self.options)
        if self.date_format is not None:
            result["dateFormat"] = self.date_format
        if self.file_settings is not None:
            result["fileSettings"] = self.file_settings.to_dict()
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        return result


# =============================================================================
# SAVED DATA
# =============================================================================

@dataclass
class SavedFieldValue:
    """A submitted value plus the metadata it was captured with."""
    field_id: str
    value: Any
    metadata: Optional[FieldMetadata]
    saved_at: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any], field_id: Optional[str] = None) -> "SavedFieldValue":
        return cls(
            field_id=str(_pick(data, "fieldId", "field_id", default=field_id or "")),
            value=data.get("value"),
            metadata=FieldMetadata.from_dict(data.get("metadata")),
            saved_at=int(_pick(data, "savedAt", "saved_at", default=0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fieldId": self.field_id,
            "value": self.value,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "savedAt": self.saved_at,
        }


@dataclass
class SavedFormData:
    """All custom field values of one record, keyed by identity."""
    schema_id: str
    schema_version: int
    fields: Dict[str, SavedFieldValue] = field(default_factory=dict)
    saved_at: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedFormData":
        raw_fields = data.get("fields") or {}
        return cls(
            schema_id=str(_pick(data, "schemaId", "schema_id", default="")),
            schema_version=int(_pick(data, "schemaVersion", "schema_version", default=0) or 0),
            fields={
                key: SavedFieldValue.from_dict(value, field_id=key)
                for key, value in raw_fields.items()
            },
            saved_at=int(_pick(data, "savedAt", "saved_at", default=0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaId": self.schema_id,
            "schemaVersion": self.schema_version,
            "fields": {key: value.to_dict() for key, value in self.fields.items()},
            "savedAt": self.saved_at,
        }


# =============================================================================
# MAPPING RESULTS
# =============================================================================

@dataclass
class MappedField:
    """Saved value whose position still exists in the schema."""
    field_id: str
    value: Any
    current_metadata: FieldMetadata
    saved_metadata: Optional[FieldMetadata]


@dataclass
class OrphanedField:
    """Saved value whose position no longer exists in the schema."""
    field_id: str
    value: Any
    saved_metadata: Optional[FieldMetadata]


@dataclass
class MissingField:
    """Schema field that has no saved value."""
    field_id: str
    current_metadata: FieldMetadata


@dataclass
class FieldMappingResult:
    """Disjoint classification of saved values against a schema."""
    mapped: List[MappedField] = field(default_factory=list)
    orphaned: List[OrphanedField] = field(default_factory=list)
    missing: List[MissingField] = field(default_factory=list)


# =============================================================================
# MIGRATION
# =============================================================================

MigrationTransform = Callable[[Any, FieldMetadata, FieldMetadata], Any]


@dataclass(frozen=True)
class FieldPattern:
    """Matcher for the saved side of a migration rule."""
    type: Optional[Union[FieldType, str]] = None
    # Exact string or compiled regex (searched)
    label: Optional[Union[str, Pattern]] = None


@dataclass(frozen=True)
class MigrationTarget:
    """Target side of a migration rule; name is matched against current labels."""
    name: str
    type: Optional[Union[FieldType, str]] = None


@dataclass(frozen=True)
class MigrationRule:
    """Remaps an orphaned value onto a field of the current schema."""
    source: FieldPattern
    target: MigrationTarget
    transform: Optional[MigrationTransform] = None
    description: str = ""


@dataclass
class SchemaChange:
    """One detected difference between saved data and the current schema."""
    change_type: ChangeType
    field_id: str
    old_metadata: Optional[FieldMetadata] = None
    new_metadata: Optional[FieldMetadata] = None
    timestamp: int = 0


@dataclass
class FieldMigration:
    """A successful rule application."""
    source: SavedFieldValue
    target: SavedFieldValue
    rule: MigrationRule


@dataclass
class SchemaEvolutionResult:
    """Partition of saved values after evolution analysis."""
    changes: List[SchemaChange] = field(default_factory=list)
    orphaned_fields: List[SavedFieldValue] = field(default_factory=list)
    migrated_fields: List[FieldMigration] = field(default_factory=list)
    valid_fields: List[SavedFieldValue] = field(default_factory=list)
    # Identities aged out of the result (hidden, not purged from storage)
    dropped_fields: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.orphaned_fields or self.migrated_fields or self.dropped_fields)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class FieldMappingConfig:
    """Per-call options for mapping, validation and evolution."""
    include_timestamp: bool = True
    show_orphaned_fields: bool = True
    orphaned_field_max_age: float = 90  # days
    auto_migrate: bool = True
    track_changes: bool = True
    migration_rules: Tuple[MigrationRule, ...] = ()

    @classmethod
    def from_settings(cls, settings: Optional[CustomFieldSettings] = None) -> "FieldMappingConfig":
        settings = settings or app_config.custom_fields
        return cls(
            include_timestamp=settings.include_timestamp,
            show_orphaned_fields=settings.show_orphaned_fields,
            orphaned_field_max_age=settings.orphaned_field_max_age,
            auto_migrate=settings.auto_migrate,
            track_changes=settings.track_changes,
        )

    def with_rules(self, rules) -> "FieldMappingConfig":
        """Copy of this config with the given migration rules."""
        return replace(self, migration_rules=tuple(rules))
