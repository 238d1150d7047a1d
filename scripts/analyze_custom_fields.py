#!/usr/bin/env python3
"""
Custom Field Drift Analysis Script.

Checks saved member custom field data against the current membership form
schema and reports, per record, which values still map, which were migrated
by a rule, which are orphaned and which have aged out. Useful for:
- Reviewing the impact of a form edit before publishing it
- Finding records that no longer pass validation
- Healing stored records after a schema change (--apply)

Usage:
    python scripts/analyze_custom_fields.py SCHEMA RECORDS [options]

RECORDS is a JSON file holding one saved record or a list of them, or a
JSONL file with one record per line. A record is the stored SavedFormData
JSON; an optional top-level "id" names it in the output.

Examples:
    # Text report for every record
    python scripts/analyze_custom_fields.py schema.json members.jsonl -v

    # Machine readable summary
    python scripts/analyze_custom_fields.py schema.json members.jsonl --json

    # Drift table as CSV and Excel
    python scripts/analyze_custom_fields.py schema.json members.jsonl --csv drift.csv --excel drift.xlsx

    # Write healed records
    python scripts/analyze_custom_fields.py schema.json members.jsonl --apply healed.jsonl

Exit code is 1 when any record fails validation against the current schema.
"""

import argparse
import json
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
from tqdm import tqdm

from config import config
from config.config_loader import ConfigurationError
from config.logging_config import get_logger, setup_logging
from src.custom_fields.export import (
    DriftExporter,
    evolution_to_dataframe,
    validation_to_dataframe,
)
from src.custom_fields.schema_evolution import (
    analyze_schema_evolution,
    apply_schema_evolution,
    build_migration_rules,
    generate_schema_evolution_report,
)
from src.custom_fields.schema_validation import validate_saved_form_data
from src.custom_fields.types import FieldMappingConfig, FormSchema, SavedFormData

logger = get_logger("analyze_custom_fields")


@dataclass
class RecordAnalysis:
    """Evolution and validation outcome for one saved record."""
    record_id: str
    is_valid: bool
    valid: int = 0
    migrated: int = 0
    orphaned: int = 0
    dropped: int = 0
    errors: List[str] = field(default_factory=list)
    report: str = ""


@dataclass
class DriftReport:
    """Outcome for a whole batch of records."""
    schema_id: str
    records: List[RecordAnalysis] = field(default_factory=list)

    @property
    def invalid_records(self) -> int:
        return sum(1 for record in self.records if not record.is_valid)

    def print_report(self, verbose: bool = False):
        """Print the drift report."""
        print("=" * 70)
        print("CUSTOM FIELD DRIFT REPORT")
        print("=" * 70)
        print(f"Schema: {self.schema_id}")
        print(f"Records: {len(self.records)}")
        print(f"Invalid records: {self.invalid_records}")
        print()

        totals = {
            "Valid": sum(r.valid for r in self.records),
            "Migrated": sum(r.migrated for r in self.records),
            "Orphaned": sum(r.orphaned for r in self.records),
            "Dropped": sum(r.dropped for r in self.records),
        }
        for label, count in totals.items():
            print(f"  {label + ' fields:':<18}{count}")
        print()

        for record in self.records:
            if not verbose and record.is_valid:
                continue
            status = "OK" if record.is_valid else "INVALID"
            print(f"RECORD: {record.record_id} [{status}]")
            print("-" * 40)
            for error in record.errors:
                print(f"  ! {error}")
            if verbose:
                print(record.report)
            print()


def load_json_file(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_records(path: Path) -> List[Dict[str, Any]]:
    """Read saved records from a JSON (object or list) or JSONL file."""
    if path.suffix.lower() == ".jsonl":
        records = []
        with open(path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping line {line_number} of {path.name}: {e}")
        return records

    data = load_json_file(path)
    return data if isinstance(data, list) else [data]


def analyze_records(
    schema: FormSchema,
    records: List[Dict[str, Any]],
    mapping_config: FieldMappingConfig,
    show_progress: bool = True,
):
    """
    Run evolution analysis and validation on each record.

    Returns:
        (DriftReport, drift DataFrame, validation DataFrame, healed records)
    """
    report = DriftReport(schema_id=schema.id)
    drift_frames = []
    validation_frames = []
    healed: List[Dict[str, Any]] = []

    for index, raw in enumerate(tqdm(records, desc="Analyzing records", disable=not show_progress)):
        record_id = str(raw.get("id", index + 1))
        saved = SavedFormData.from_dict(raw)

        evolution = analyze_schema_evolution(saved, schema, mapping_config)
        validation = validate_saved_form_data(saved, schema, mapping_config)

        errors = list(validation.global_errors)
        for field_id, message in validation.field_errors.items():
            errors.append(f"{field_id}: {message}")

        report.records.append(
            RecordAnalysis(
                record_id=record_id,
                is_valid=validation.is_valid,
                valid=len(evolution.valid_fields),
                migrated=len(evolution.migrated_fields),
                orphaned=len(evolution.orphaned_fields),
                dropped=len(evolution.dropped_fields),
                errors=errors,
                report=generate_schema_evolution_report(evolution),
            )
        )

        drift_df = evolution_to_dataframe(evolution)
        drift_df.insert(0, "record_id", record_id)
        drift_frames.append(drift_df)

        validation_df = validation_to_dataframe(validation)
        validation_df.insert(0, "record_id", record_id)
        validation_frames.append(validation_df)

        healed_record = apply_schema_evolution(saved, evolution).to_dict()
        if "id" in raw:
            healed_record["id"] = raw["id"]
        healed.append(healed_record)

    drift = pd.concat(drift_frames, ignore_index=True) if drift_frames else pd.DataFrame()
    validation = pd.concat(validation_frames, ignore_index=True) if validation_frames else pd.DataFrame()
    return report, drift, validation, healed


def write_records(path: Path, records: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() == ".jsonl":
            for record in records:
                f.write(json.dumps(record) + "\n")
        else:
            json.dump(records, f, indent=2)
    logger.info(f"Wrote {len(records)} healed record(s) to {path}")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Analyze saved custom field data against the current form schema"
    )
    parser.add_argument("schema", type=Path, help="Path to the form schema JSON")
    parser.add_argument("records", type=Path, help="Path to saved records (JSON or JSONL)")
    parser.add_argument(
        "--json",
        help="Output as JSON",
        action="store_true"
    )
    parser.add_argument(
        "--csv",
        type=Path,
        help="Write the per-field drift table to this CSV file",
        default=None
    )
    parser.add_argument(
        "--excel",
        type=Path,
        help="Write drift and validation sheets to this .xlsx file",
        default=None
    )
    parser.add_argument(
        "--apply",
        type=Path,
        help="Write healed records (valid plus migrated values) to this file",
        default=None
    )
    parser.add_argument(
        "--no-migrate",
        help="Disable rule-based migration of orphaned values",
        action="store_true"
    )
    parser.add_argument(
        "--rules-file",
        type=Path,
        help="Migration rules YAML (defaults to config/migration_rules.yaml)",
        default=None
    )
    parser.add_argument(
        "--verbose", "-v",
        help="Show the evolution report for every record",
        action="store_true"
    )
    parser.add_argument(
        "--log-level",
        default=config.app.log_level,
        help="Logging level"
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level, config.app.log_file)

    try:
        schema = FormSchema.from_dict(load_json_file(args.schema))
        records = load_records(args.records)
        rules_file = str(args.rules_file) if args.rules_file is not None else None
        rules = [] if args.no_migrate else build_migration_rules(rules_file=rules_file)
    except (OSError, json.JSONDecodeError, ConfigurationError) as e:
        logger.error(f"Failed to load inputs: {e}")
        sys.exit(2)

    mapping_config = FieldMappingConfig.from_settings().with_rules(rules)
    if args.no_migrate:
        mapping_config = replace(mapping_config, auto_migrate=False)

    report, drift, validation, healed = analyze_records(
        schema, records, mapping_config, show_progress=not args.json
    )

    exporter = DriftExporter()
    if args.csv:
        exporter.output_dir = args.csv.parent
        exporter.export_to_csv(drift, filename=args.csv.name)
    if args.excel:
        exporter.output_dir = args.excel.parent
        exporter.export_to_excel({"Drift": drift, "Validation": validation}, filename=args.excel.name)
    if args.apply:
        write_records(args.apply, healed)

    if args.json:
        output = {
            "schema_id": report.schema_id,
            "records": len(report.records),
            "invalid_records": report.invalid_records,
            "results": [
                {
                    "id": record.record_id,
                    "is_valid": record.is_valid,
                    "valid": record.valid,
                    "migrated": record.migrated,
                    "orphaned": record.orphaned,
                    "dropped": record.dropped,
                    "errors": record.errors,
                }
                for record in report.records
            ],
        }
        print(json.dumps(output, indent=2))
    else:
        report.print_report(verbose=args.verbose)

    # Exit with error code if any record is invalid
    if report.invalid_records:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
