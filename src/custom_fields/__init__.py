"""Custom field identity, schema mapping, validation and evolution."""

from .types import (
    FieldType,
    ChangeType,
    FileSettings,
    ValidationRules,
    FormComponent,
    FormColumn,
    FormRow,
    FormSchema,
    FieldIdentity,
    FieldMetadata,
    SavedFieldValue,
    SavedFormData,
    MappedField,
    OrphanedField,
    MissingField,
    FieldMappingResult,
    FieldPattern,
    MigrationTarget,
    MigrationRule,
    SchemaChange,
    FieldMigration,
    SchemaEvolutionResult,
    FieldMappingConfig,
)
from .field_identification import (
    generate_field_id,
    parse_field_id,
    extract_field_metadata,
    create_schema_field_map,
    field_exists_in_schema,
    get_field_metadata_from_schema,
    find_field_by_label,
)
from .schema_mapping import (
    MappingStats,
    map_saved_values_to_schema,
    create_saved_form_data,
    convert_saved_data_to_form_values,
    filter_valid_fields,
    get_mapping_stats,
)
from .schema_validation import (
    FieldValidationResult,
    FormValidationResult,
    TYPE_VALIDATORS,
    validate_field_value,
    validate_saved_form_data,
    validate_saved_field,
)
from .schema_evolution import (
    EvolutionStats,
    create_common_migration_rules,
    build_migration_rules,
    matches_migration_rule,
    attempt_field_migration,
    analyze_schema_evolution,
    apply_schema_evolution,
    generate_schema_evolution_report,
    get_evolution_stats,
)
from .flattened_converter import (
    FlattenedFieldData,
    convert_to_flattened_field_data,
    get_component_metadata,
)
from .field_validation import (
    ValidationReason,
    ValidatedFieldData,
    FlattenedValidationResult,
    are_component_types_compatible,
    validate_fields_against_schema,
    get_valid_fields_for_rendering,
)
from .reverse_mapping import (
    convert_legacy_data_to_flattened,
    convert_flattened_data_to_form_values,
    extract_values_from_saved_form_data,
)
from .export import (
    DriftExporter,
    mapping_to_dataframe,
    evolution_to_dataframe,
    validation_to_dataframe,
)

__all__ = [
    # Types
    "FieldType",
    "ChangeType",
    "FileSettings",
    "ValidationRules",
    "FormComponent",
    "FormColumn",
    "FormRow",
    "FormSchema",
    "FieldIdentity",
    "FieldMetadata",
    "SavedFieldValue",
    "SavedFormData",
    "MappedField",
    "OrphanedField",
    "MissingField",
    "FieldMappingResult",
    "FieldPattern",
    "MigrationTarget",
    "MigrationRule",
    "SchemaChange",
    "FieldMigration",
    "SchemaEvolutionResult",
    "FieldMappingConfig",
    # Identity
    "generate_field_id",
    "parse_field_id",
    "extract_field_metadata",
    "create_schema_field_map",
    "field_exists_in_schema",
    "get_field_metadata_from_schema",
    "find_field_by_label",
    # Mapping
    "MappingStats",
    "map_saved_values_to_schema",
    "create_saved_form_data",
    "convert_saved_data_to_form_values",
    "filter_valid_fields",
    "get_mapping_stats",
    # Validation
    "FieldValidationResult",
    "FormValidationResult",
    "TYPE_VALIDATORS",
    "validate_field_value",
    "validate_saved_form_data",
    "validate_saved_field",
    # Evolution
    "EvolutionStats",
    "create_common_migration_rules",
    "build_migration_rules",
    "matches_migration_rule",
    "attempt_field_migration",
    "analyze_schema_evolution",
    "apply_schema_evolution",
    "generate_schema_evolution_report",
    "get_evolution_stats",
    # Flattened storage
    "FlattenedFieldData",
    "convert_to_flattened_field_data",
    "get_component_metadata",
    "ValidationReason",
    "ValidatedFieldData",
    "FlattenedValidationResult",
    "are_component_types_compatible",
    "validate_fields_against_schema",
    "get_valid_fields_for_rendering",
    "convert_legacy_data_to_flattened",
    "convert_flattened_data_to_form_values",
    "extract_values_from_saved_form_data",
    # Export
    "DriftExporter",
    "mapping_to_dataframe",
    "evolution_to_dataframe",
    "validation_to_dataframe",
]
