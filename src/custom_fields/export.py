"""Tabular export of mapping, evolution and validation results."""

import io
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from config import config
from config.logging_config import get_logger
from src.custom_fields.schema_validation import FormValidationResult
from src.custom_fields.types import FieldMappingResult, FieldType, SchemaEvolutionResult

logger = get_logger("export")

MAPPING_COLUMNS = [
    "field_id",
    "status",
    "saved_label",
    "current_label",
    "field_type",
    "required",
    "label_changed",
    "value",
]

EVOLUTION_COLUMNS = [
    "field_id",
    "status",
    "label",
    "field_type",
    "target_field_id",
    "target_label",
    "rule",
    "value",
]

VALIDATION_COLUMNS = ["field_id", "is_valid", "errors", "warnings"]

# Excel column widths per sheet
COLUMN_WIDTHS = {
    "field_id": 32,
    "status": 12,
    "saved_label": 24,
    "current_label": 24,
    "label": 24,
    "target_field_id": 32,
    "target_label": 24,
    "rule": 30,
    "value": 40,
    "errors": 50,
    "warnings": 50,
}


def _display_value(value: Any) -> str:
    """Render any saved value as text so every export format accepts it."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def _type_name(field_type: Any) -> str:
    return FieldType.parse(field_type).value


def mapping_to_dataframe(mapping: FieldMappingResult) -> pd.DataFrame:
    """One row per mapped, orphaned or missing field."""
    rows: List[Dict[str, Any]] = []

    for mapped in mapping.mapped:
        saved_label = mapped.saved_metadata.label if mapped.saved_metadata else None
        rows.append({
            "field_id": mapped.field_id,
            "status": "mapped",
            "saved_label": saved_label,
            "current_label": mapped.current_metadata.label,
            "field_type": _type_name(mapped.current_metadata.type),
            "required": mapped.current_metadata.required,
            "label_changed": saved_label is not None and saved_label != mapped.current_metadata.label,
            "value": _display_value(mapped.value),
        })

    for orphan in mapping.orphaned:
        metadata = orphan.saved_metadata
        rows.append({
            "field_id": orphan.field_id,
            "status": "orphaned",
            "saved_label": metadata.label if metadata else None,
            "current_label": None,
            "field_type": _type_name(metadata.type) if metadata else None,
            "required": metadata.required if metadata else False,
            "label_changed": False,
            "value": _display_value(orphan.value),
        })

    for missing in mapping.missing:
        rows.append({
            "field_id": missing.field_id,
            "status": "missing",
            "saved_label": None,
            "current_label": missing.current_metadata.label,
            "field_type": _type_name(missing.current_metadata.type),
            "required": missing.current_metadata.required,
            "label_changed": False,
            "value": "",
        })

    return pd.DataFrame(rows, columns=MAPPING_COLUMNS)


def evolution_to_dataframe(result: SchemaEvolutionResult) -> pd.DataFrame:
    """One row per valid, migrated, orphaned or dropped saved field."""
    rows: List[Dict[str, Any]] = []

    def base_row(field_value, status: str) -> Dict[str, Any]:
        metadata = field_value.metadata
        return {
            "field_id": field_value.field_id,
            "status": status,
            "label": metadata.label if metadata else None,
            "field_type": _type_name(metadata.type) if metadata else None,
            "target_field_id": None,
            "target_label": None,
            "rule": None,
            "value": _display_value(field_value.value),
        }

    for field_value in result.valid_fields:
        rows.append(base_row(field_value, "valid"))

    for migration in result.migrated_fields:
        row = base_row(migration.source, "migrated")
        row["target_field_id"] = migration.target.field_id
        row["target_label"] = migration.target.metadata.label if migration.target.metadata else None
        row["rule"] = migration.rule.description or migration.rule.target.name
        row["value"] = _display_value(migration.target.value)
        rows.append(row)

    for field_value in result.orphaned_fields:
        rows.append(base_row(field_value, "orphaned"))

    for field_id in result.dropped_fields:
        rows.append({column: None for column in EVOLUTION_COLUMNS} | {
            "field_id": field_id,
            "status": "dropped",
        })

    return pd.DataFrame(rows, columns=EVOLUTION_COLUMNS)


def validation_to_dataframe(result: FormValidationResult) -> pd.DataFrame:
    """One row per validated field."""
    rows = [
        {
            "field_id": field_id,
            "is_valid": field_result.is_valid,
            "errors": "; ".join(field_result.errors),
            "warnings": "; ".join(field_result.warnings),
        }
        for field_id, field_result in result.field_results.items()
    ]
    return pd.DataFrame(rows, columns=VALIDATION_COLUMNS)


class DriftExporter:
    """Export drift reports to CSV and Excel."""

    def __init__(self, output_dir: Optional[Path] = None):
        """
        Initialize exporter.

        Args:
            output_dir: Directory for file exports.
        """
        self.output_dir = output_dir or config.data.reports_path

    def export_to_csv(
        self,
        df: pd.DataFrame,
        filename: Optional[str] = None,
    ) -> Path:
        """
        Export DataFrame to CSV file.

        Args:
            df: DataFrame to export.
            filename: Output filename (generated if None).

        Returns:
            Path to exported file.
        """
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"custom_field_drift_{timestamp}.csv"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename
        df.to_csv(filepath, index=False, encoding="utf-8")

        logger.info(f"Exported {len(df)} rows to {filepath}")
        return filepath

    def export_to_csv_buffer(self, df: pd.DataFrame) -> io.StringIO:
        """
        Export DataFrame to CSV in-memory buffer.

        Returns:
            StringIO buffer with CSV data.
        """
        buffer = io.StringIO()
        df.to_csv(buffer, index=False, encoding="utf-8")
        buffer.seek(0)
        return buffer

    def export_to_excel_buffer(self, sheets: Dict[str, pd.DataFrame]) -> io.BytesIO:
        """
        Export one or more DataFrames to an Excel workbook in memory.

        Args:
            sheets: Sheet name -> DataFrame, written in order.

        Returns:
            BytesIO buffer with Excel data.
        """
        buffer = io.BytesIO()

        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for sheet_name, df in sheets.items():
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                self._format_sheet(writer.sheets[sheet_name], list(df.columns))

        buffer.seek(0)
        return buffer

    def export_to_excel(
        self,
        sheets: Dict[str, pd.DataFrame],
        filename: Optional[str] = None,
    ) -> Path:
        """Write sheets to an .xlsx file in the output directory."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"custom_field_drift_{timestamp}.xlsx"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename
        filepath.write_bytes(self.export_to_excel_buffer(sheets).getvalue())

        logger.info(f"Exported {len(sheets)} sheet(s) to Excel: {filepath}")
        return filepath

    def _format_sheet(self, worksheet, columns: List[str]) -> None:
        """Bold header row and set column widths."""
        from openpyxl.styles import Font, PatternFill
        from openpyxl.utils import get_column_letter

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")

        for cell in worksheet[1]:
            cell.font = header_font
            cell.fill = header_fill

        for index, column in enumerate(columns, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTHS.get(column, 14)
