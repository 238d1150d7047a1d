"""
Schema evolution analysis and field migration.

When the form schema is edited, saved values fall into four groups:

- valid: the value's position still exists in the schema
- dropped: position gone and older than ``orphaned_field_max_age`` days
- migrated: position gone, but a migration rule moved it onto a field of
  the current schema
- orphaned: everything else

``analyze_schema_evolution`` only reports. ``apply_schema_evolution`` builds
the healed record (valid values plus migration targets); persisting its
output removes orphaned and dropped values from the record.

Migration rules are tried in order and the first rule that both matches the
saved field and finds its target wins. A target is the first current field
whose label equals ``rule.target.name`` exactly, so renaming a label in the
form builder disables rules pointing at it.

Usage:
    from src.custom_fields.schema_evolution import (
        analyze_schema_evolution, apply_schema_evolution, generate_schema_evolution_report,
    )

    result = analyze_schema_evolution(saved_data, schema)
    print(generate_schema_evolution_report(result))
    healed = apply_schema_evolution(saved_data, result)
"""

import inspect
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from config.config_loader import load_migration_rule_specs
from config.constants import MS_PER_DAY
from config.logging_config import get_logger
from src.custom_fields.field_identification import (
    create_schema_field_map,
    current_time_ms,
    find_field_by_label,
    parse_field_id,
)
from src.custom_fields.types import (
    ChangeType,
    FieldMappingConfig,
    FieldMetadata,
    FieldMigration,
    FieldPattern,
    FieldType,
    FormSchema,
    MigrationRule,
    MigrationTarget,
    SavedFieldValue,
    SavedFormData,
    SchemaChange,
    SchemaEvolutionResult,
)

logger = get_logger("schema_evolution")

REPORT_HEADER = "=== Schema Evolution Report ==="


@dataclass
class EvolutionStats:
    """Counts summarizing an evolution analysis."""
    total_fields: int = 0
    valid_fields: int = 0
    orphaned_fields: int = 0
    migrated_fields: int = 0
    migration_success: bool = False


# =============================================================================
# TRANSFORMS
# =============================================================================

def identity(value: Any, *_: Any) -> Any:
    return value


def first_item(value: Any, *_: Any) -> Any:
    """Unwrap a multi-value answer to its first entry."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def wrap_list(value: Any, *_: Any) -> Any:
    """Wrap a single answer as a one-element list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def to_string(value: Any, *_: Any) -> str:
    return "" if value is None else str(value)


def join_comma(value: Any, *_: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return to_string(value)


TRANSFORMS: Dict[str, Callable[..., Any]] = {
    "identity": identity,
    "first_item": first_item,
    "wrap_list": wrap_list,
    "to_string": to_string,
    "join_comma": join_comma,
}


# =============================================================================
# RULE CATALOGUE
# =============================================================================

def create_common_migration_rules() -> List[MigrationRule]:
    """Built-in rules for typical field edits. Callers may add or replace rules."""
    return [
        MigrationRule(
            source=FieldPattern(type=FieldType.EMAIL),
            target=MigrationTarget(name="work_email", type=FieldType.EMAIL),
            description="Email field renamed",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.PHONE),
            target=MigrationTarget(name="work_phone", type=FieldType.PHONE),
            description="Phone field renamed",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.TEXT),
            target=MigrationTarget(name="textarea_field", type=FieldType.TEXTAREA),
            transform=identity,
            description="Text to textarea",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.SELECT),
            target=MigrationTarget(name="radio_field", type=FieldType.RADIO),
            transform=first_item,
            description="Select to radio",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.RADIO),
            target=MigrationTarget(name="select_field", type=FieldType.SELECT),
            transform=identity,
            description="Radio to select",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.CHECKBOX),
            target=MigrationTarget(name="radio_field", type=FieldType.RADIO),
            transform=first_item,
            description="Checkbox to radio",
        ),
        MigrationRule(
            source=FieldPattern(type=FieldType.RADIO),
            target=MigrationTarget(name="checkbox_field", type=FieldType.CHECKBOX),
            transform=wrap_list,
            description="Radio to checkbox",
        ),
    ]


def rules_from_specs(specs: Iterable[Dict[str, Any]]) -> List[MigrationRule]:
    """Build MigrationRule objects from validated YAML rule dictionaries."""
    rules = []
    for spec in specs:
        source = spec.get("from", {})
        target = spec["to"]
        label = source.get("label")
        if "label_regex" in source:
            label = re.compile(source["label_regex"], re.IGNORECASE)
        transform_name = spec.get("transform")
        rules.append(
            MigrationRule(
                source=FieldPattern(type=source.get("type"), label=label),
                target=MigrationTarget(name=target["name"], type=target.get("type")),
                transform=TRANSFORMS[transform_name] if transform_name else None,
                description=spec.get("description", ""),
            )
        )
    return rules


def load_configured_migration_rules(rules_file: Optional[str] = None) -> List[MigrationRule]:
    """Rules from the YAML catalogue (settings path if rules_file is None)."""
    return rules_from_specs(load_migration_rule_specs(rules_file))


def build_migration_rules(
    extra: Iterable[MigrationRule] = (),
    include_common: bool = True,
    include_configured: bool = True,
    rules_file: Optional[str] = None,
) -> List[MigrationRule]:
    """Built-in rules, then YAML rules, then caller rules, in that order.

    rules_file overrides the catalogue path from settings for this call only.
    """
    rules: List[MigrationRule] = []
    if include_common:
        rules.extend(create_common_migration_rules())
    if include_configured:
        rules.extend(load_configured_migration_rules(rules_file))
    rules.extend(extra)
    return rules


def default_evolution_config() -> FieldMappingConfig:
    return FieldMappingConfig.from_settings().with_rules(build_migration_rules())


# =============================================================================
# MIGRATION
# =============================================================================

def _call_transform(
    transform: Callable[..., Any],
    value: Any,
    old_metadata: FieldMetadata,
    new_metadata: FieldMetadata,
) -> Any:
    """Call a transform with as many of (value, old, new) as it accepts."""
    args = (value, old_metadata, new_metadata)
    try:
        params = list(inspect.signature(transform).parameters.values())
    except (TypeError, ValueError):
        return transform(*args)

    if any(p.kind == p.VAR_POSITIONAL for p in params):
        return transform(*args)
    positional = [p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    return transform(*args[:max(len(positional), 1)])


def matches_migration_rule(metadata: Optional[FieldMetadata], pattern: FieldPattern) -> bool:
    """Check the saved metadata against a rule's type and label matchers."""
    if metadata is None:
        return False

    if pattern.type is not None and FieldType.parse(pattern.type) != FieldType.parse(metadata.type):
        return False

    if pattern.label is not None:
        if isinstance(pattern.label, str):
            if metadata.label != pattern.label:
                return False
        elif not pattern.label.search(metadata.label or ""):
            return False

    return True


def attempt_field_migration(
    field_value: SavedFieldValue,
    current_schema: Optional[FormSchema],
    migration_rules: Iterable[MigrationRule],
    now: int,
) -> Optional[FieldMigration]:
    """
    Try each rule in order; return the first successful migration.

    A rule is skipped when its pattern does not match, when no current field
    carries its target label, or when its transform raises.
    """
    old_metadata = field_value.metadata
    if old_metadata is None:
        return None

    for rule in migration_rules:
        if not matches_migration_rule(old_metadata, rule.source):
            continue

        new_metadata = find_field_by_label(current_schema, rule.target.name, now)
        if new_metadata is None:
            continue

        new_value = field_value.value
        if rule.transform is not None:
            try:
                new_value = _call_transform(rule.transform, field_value.value, old_metadata, new_metadata)
            except Exception as e:
                logger.warning(
                    f"Field migration transformation failed for {field_value.field_id} "
                    f"({rule.description or rule.target.name}): {e}"
                )
                continue

        logger.debug(f"Migrated {field_value.field_id} -> {new_metadata.field_id}")
        return FieldMigration(
            source=field_value,
            target=SavedFieldValue(
                field_id=new_metadata.field_id,
                value=new_value,
                metadata=new_metadata,
                saved_at=now,
            ),
            rule=rule,
        )

    return None


def _detect_metadata_change(
    field_id: str,
    saved: Optional[FieldMetadata],
    current: FieldMetadata,
    now: int,
) -> Optional[SchemaChange]:
    if saved is None:
        return None
    if (
        FieldType.parse(saved.type) != current.type
        or saved.required != current.required
        or (saved.options or []) != (current.options or [])
    ):
        return SchemaChange(ChangeType.MODIFIED, field_id, saved, current, now)
    if saved.label != current.label:
        return SchemaChange(ChangeType.RENAMED, field_id, saved, current, now)
    return None


def analyze_schema_evolution(
    saved_data: SavedFormData,
    current_schema: Optional[FormSchema],
    config: Optional[FieldMappingConfig] = None,
    now: Optional[int] = None,
) -> SchemaEvolutionResult:
    """
    Partition saved values into valid, migrated, orphaned and dropped.

    Args:
        saved_data: Previously saved record data.
        current_schema: Schema in effect now. A schema without rows leaves
            nothing valid.
        config: Age window, auto-migration switch and rules; settings
            defaults plus the rule catalogue if None.
        now: Reference time in ms (current time if None).

    Returns:
        SchemaEvolutionResult. Inputs are not modified.
    """
    config = config or default_evolution_config()
    now = current_time_ms() if now is None else now
    max_age_ms = config.orphaned_field_max_age * MS_PER_DAY

    current_field_map = create_schema_field_map(current_schema, config)
    result = SchemaEvolutionResult()
    matched_positions = set()

    for field_id, field_value in saved_data.fields.items():
        parsed = parse_field_id(field_id)
        current_metadata = current_field_map.get(parsed.position_key) if parsed else None

        if current_metadata is not None:
            result.valid_fields.append(field_value)
            matched_positions.add(parsed.position_key)
            if config.track_changes:
                change = _detect_metadata_change(field_id, field_value.metadata, current_metadata, now)
                if change is not None:
                    result.changes.append(change)
            continue

        if now - field_value.saved_at > max_age_ms:
            logger.debug(f"Dropping stale orphaned field {field_id}")
            result.dropped_fields.append(field_id)
            continue

        migration = None
        if config.auto_migrate and config.migration_rules:
            migration = attempt_field_migration(
                field_value, current_schema, config.migration_rules, now
            )

        if migration is not None:
            result.migrated_fields.append(migration)
            matched_positions.add(migration.target.metadata.position_key)
            if config.track_changes:
                result.changes.append(
                    SchemaChange(
                        ChangeType.RENAMED,
                        field_id,
                        field_value.metadata,
                        migration.target.metadata,
                        now,
                    )
                )
        else:
            result.orphaned_fields.append(field_value)
            if config.track_changes:
                result.changes.append(
                    SchemaChange(ChangeType.REMOVED, field_id, field_value.metadata, None, now)
                )

    if config.track_changes:
        for position_key, metadata in current_field_map.items():
            if position_key not in matched_positions:
                result.changes.append(
                    SchemaChange(ChangeType.ADDED, metadata.field_id, None, metadata, now)
                )

    logger.debug(
        f"Evolution of {len(saved_data.fields)} fields: {len(result.valid_fields)} valid, "
        f"{len(result.migrated_fields)} migrated, {len(result.orphaned_fields)} orphaned, "
        f"{len(result.dropped_fields)} dropped"
    )
    return result


def apply_schema_evolution(
    saved_data: SavedFormData,
    evolution_result: SchemaEvolutionResult,
    now: Optional[int] = None,
) -> SavedFormData:
    """
    Build the healed record: valid values plus migration targets.

    Orphaned and dropped values are not carried over. A migration target
    whose row/column already holds a valid value is skipped, as is a second
    migration onto the same slot.
    """
    now = current_time_ms() if now is None else now
    fields: Dict[str, SavedFieldValue] = {}
    occupied = set()

    for field_value in evolution_result.valid_fields:
        fields[field_value.field_id] = field_value
        parsed = parse_field_id(field_value.field_id)
        if parsed is not None:
            occupied.add(parsed.position_key)

    for migration in evolution_result.migrated_fields:
        target = migration.target
        position_key = target.metadata.position_key if target.metadata else None
        if position_key in occupied:
            logger.debug(f"Skipping migration onto occupied slot {position_key}")
            continue
        fields[target.field_id] = target
        occupied.add(position_key)

    return SavedFormData(
        schema_id=saved_data.schema_id,
        schema_version=saved_data.schema_version,
        fields=fields,
        saved_at=now,
    )


# =============================================================================
# REPORTING
# =============================================================================

def _describe_position(field_value: SavedFieldValue) -> str:
    metadata = field_value.metadata
    if metadata is None:
        return field_value.field_id
    return f"{metadata.schema_id}:{metadata.row_id}:{metadata.column_id}"


def generate_schema_evolution_report(evolution_result: SchemaEvolutionResult) -> str:
    """Plain-text summary of an evolution analysis, for logs and operators."""
    lines: List[str] = [
        REPORT_HEADER,
        f"Valid fields: {len(evolution_result.valid_fields)}",
        f"Orphaned fields: {len(evolution_result.orphaned_fields)}",
        f"Migrated fields: {len(evolution_result.migrated_fields)}",
        f"Dropped fields: {len(evolution_result.dropped_fields)}",
        "",
    ]

    if evolution_result.orphaned_fields:
        lines.append("Orphaned Fields:")
        for field_value in evolution_result.orphaned_fields:
            metadata = field_value.metadata
            if metadata is None:
                lines.append(f"  - {field_value.field_id} (no metadata)")
            else:
                lines.append(
                    f"  - {_describe_position(field_value)} ({FieldType.parse(metadata.type).value}): \"{metadata.label}\""
                )
        lines.append("")

    if evolution_result.migrated_fields:
        lines.append("Migrated Fields:")
        for migration in evolution_result.migrated_fields:
            lines.append(
                f"  - {_describe_position(migration.source)} -> {_describe_position(migration.target)}"
            )
        lines.append("")

    if evolution_result.dropped_fields:
        lines.append("Dropped Fields:")
        for field_id in evolution_result.dropped_fields:
            lines.append(f"  - {field_id}")
        lines.append("")

    return "\n".join(lines)


def get_evolution_stats(
    saved_data: Optional[SavedFormData],
    evolution_result: SchemaEvolutionResult,
) -> EvolutionStats:
    total = len(saved_data.fields) if saved_data else 0
    valid = len(evolution_result.valid_fields)
    orphaned = len(evolution_result.orphaned_fields)
    migrated = len(evolution_result.migrated_fields)
    return EvolutionStats(
        total_fields=total,
        valid_fields=valid,
        orphaned_fields=orphaned,
        migrated_fields=migrated,
        migration_success=migrated > 0 or (orphaned == 0 and valid == total),
    )
