"""
Column-driven Excel import.

A subclass declares its columns and how to store valid rows; the base class
builds the template (data sheet plus Instructions sheet), parses uploads,
checks types and required values, and imports valid rows in batches.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import openpyxl
from django.db import transaction

from .dtos import (
    FileParseResultDTO, ImportErrorDTO, ImportResultDTO, ParsedRowDTO, PreviewResultDTO,
)
from .excel import (
    coerce_bool, coerce_date, coerce_decimal, coerce_string, is_blank_row,
    load_workbook_bytes, normalize_header, read_rows, set_column_widths,
    style_header_row, workbook_to_bytes,
)
from .validator import EMAIL_PATTERN

logger = logging.getLogger(__name__)


class ColumnType:
    STRING = 'string'
    NUMBER = 'number'
    DATE = 'date'
    EMAIL = 'email'
    BOOLEAN = 'boolean'
    LOOKUP = 'lookup'


TYPE_DESCRIPTIONS = {
    ColumnType.STRING: 'Text',
    ColumnType.NUMBER: 'Number',
    ColumnType.DATE: 'Date (YYYY-MM-DD)',
    ColumnType.EMAIL: 'Email address',
    ColumnType.BOOLEAN: 'Yes/No, True/False, or 1/0',
}


@dataclass(frozen=True)
class ColumnDefinition:
    field: str
    header: str
    required: bool = False
    type: str = ColumnType.STRING
    lookup_values: Tuple[str, ...] = ()
    width: int = 15
    description: str = ""

    @property
    def template_header(self) -> str:
        return f"{self.header}*" if self.required else self.header

    @property
    def type_description(self) -> str:
        if self.type == ColumnType.LOOKUP and self.lookup_values:
            return f"One of: {', '.join(self.lookup_values)}"
        return TYPE_DESCRIPTIONS.get(self.type, 'Text')


@dataclass
class ImportContext:
    tenant_id: UUID
    user_id: Optional[UUID] = None
    lookups: Dict[str, Any] = field(default_factory=dict)


class BaseExcelImportService:
    entity_name = 'Record'
    entity_name_plural = 'Records'
    sheet_name = 'Data'
    max_rows = 1000
    batch_size = 100
    include_instructions = True
    instructions_text: List[str] = []
    example_rows: List[dict] = []

    # -------------------------------------------------------------------------
    # Subclass hooks
    # -------------------------------------------------------------------------

    def get_columns(self) -> List[ColumnDefinition]:
        raise NotImplementedError

    def load_lookups(self, context: ImportContext) -> Dict[str, Any]:
        return {}

    def validate_row(self, data: Dict[str, Any], context: ImportContext) -> List[Tuple[str, str]]:
        """Entity rules for one typed row, as (column header, message) pairs."""
        return []

    def transform_for_preview(self, data: Dict[str, Any], context: ImportContext) -> Dict[str, Any]:
        return data

    def transform_for_import(self, data: Dict[str, Any], context: ImportContext) -> Dict[str, Any]:
        return data

    def import_rows(self, items: List[Dict[str, Any]], context: ImportContext) -> int:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Template
    # -------------------------------------------------------------------------

    def generate_template(self) -> bytes:
        columns = self.get_columns()
        workbook = openpyxl.Workbook()
        worksheet = workbook.active
        worksheet.title = self.sheet_name

        for col, column in enumerate(columns, start=1):
            worksheet.cell(row=1, column=col, value=column.template_header)
        style_header_row(worksheet, 1, len(columns))
        for row, example in enumerate(self.example_rows, start=2):
            for col, column in enumerate(columns, start=1):
                worksheet.cell(row=row, column=col, value=example.get(column.field))
        set_column_widths(worksheet, [c.width for c in columns])
        worksheet.freeze_panes = 'A2'

        if self.include_instructions:
            self._write_instructions(workbook.create_sheet('Instructions'), columns)
        return workbook_to_bytes(workbook)

    def _write_instructions(self, worksheet, columns: List[ColumnDefinition]) -> None:
        worksheet.append([f"{self.entity_name} Import Instructions"])
        worksheet.append([])
        for line in self.instructions_text:
            worksheet.append([line])
        worksheet.append([])
        worksheet.append(['Column Reference:'])
        worksheet.append(['Column', 'Required', 'Type', 'Description'])
        style_header_row(worksheet, worksheet.max_row, 4)
        for column in columns:
            worksheet.append([
                column.header,
                'Yes' if column.required else 'No',
                column.type_description,
                column.description,
            ])
        worksheet.append([])
        worksheet.append(['Notes:'])
        worksheet.append([f"- Maximum {self.max_rows} {self.entity_name_plural.lower()} per import"])
        worksheet.append(['- Columns marked with * are required'])
        worksheet.append(['- Rows with errors are skipped; valid rows are still imported'])
        set_column_widths(worksheet, [25, 10, 30, 50])

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _select_sheet(self, workbook):
        for worksheet in workbook.worksheets:
            if worksheet.title.strip().lower() == self.sheet_name.lower():
                return worksheet
        return workbook.worksheets[0]

    def _coerce(self, value, column: ColumnDefinition) -> Tuple[Any, Optional[str]]:
        try:
            if column.type == ColumnType.NUMBER:
                return coerce_decimal(value), None
            if column.type == ColumnType.DATE:
                return coerce_date(value), None
            if column.type == ColumnType.BOOLEAN:
                return coerce_bool(value), None
        except ValueError:
            if column.type == ColumnType.NUMBER:
                return None, 'Must be a number'
            if column.type == ColumnType.DATE:
                return None, 'Invalid date (use YYYY-MM-DD)'
            return None, 'Must be Yes/No, True/False, or 1/0'

        text = coerce_string(value)
        if text is None:
            return None, None
        if column.type == ColumnType.EMAIL:
            text = text.lower()
            if not EMAIL_PATTERN.match(text):
                return text, 'Invalid email format'
        if column.type == ColumnType.LOOKUP and column.lookup_values:
            match = next((v for v in column.lookup_values if v.lower() == text.lower()), None)
            if match is None:
                return text, f"Must be one of: {', '.join(column.lookup_values)}"
            text = match
        return text, None

    def _parse_row(self, row_number: int, row, header_map: Dict[str, int], context: ImportContext) -> ParsedRowDTO:
        data, errors = {}, []
        for column in self.get_columns():
            index = header_map.get(normalize_header(column.header))
            raw = row[index] if index is not None and index < len(row) else None
            value, error = self._coerce(raw, column)
            data[column.field] = value
            if error:
                errors.append(ImportErrorDTO(self.sheet_name, row_number, error, column.header))
            elif column.required and value is None:
                errors.append(ImportErrorDTO(self.sheet_name, row_number, f"{column.header} is required", column.header))

        if not errors:
            for header, message in self.validate_row(data, context):
                errors.append(ImportErrorDTO(self.sheet_name, row_number, message, header))
        return ParsedRowDTO(row_number=row_number, data=data, is_valid=not errors, errors=errors)

    def parse_file(self, content: bytes, context: ImportContext) -> FileParseResultDTO:
        try:
            workbook = load_workbook_bytes(content)
        except Exception as e:
            logger.warning(f"Could not open {self.entity_name.lower()} import file: {e}")
            return FileParseResultDTO(total_rows=0, error=f"Failed to parse Excel file: {e}")

        rows = read_rows(self._select_sheet(workbook))
        if not rows:
            return FileParseResultDTO(total_rows=0, error='The file has no header row')

        header_map = {}
        for index, header in enumerate(rows[0]):
            key = normalize_header(header)
            if key and key not in header_map:
                header_map[key] = index

        data_rows = [(index + 1, row) for index, row in enumerate(rows) if index > 0 and not is_blank_row(row)]
        if len(data_rows) > self.max_rows:
            return FileParseResultDTO(
                total_rows=len(data_rows),
                error=f"Too many rows. Maximum allowed is {self.max_rows}",
            )

        context.lookups.update(self.load_lookups(context))
        parsed = [self._parse_row(number, row, header_map, context) for number, row in data_rows]
        return FileParseResultDTO(total_rows=len(parsed), rows=parsed)

    # -------------------------------------------------------------------------
    # Preview and import
    # -------------------------------------------------------------------------

    def get_preview_result(self, content: bytes, tenant_id: UUID, user_id: Optional[UUID] = None) -> PreviewResultDTO:
        context = ImportContext(tenant_id=tenant_id, user_id=user_id)
        result = self.parse_file(content, context)
        valid = result.valid_rows
        return PreviewResultDTO(
            success=result.error is None and not result.errors,
            total_rows=result.total_rows,
            valid_rows=len(valid),
            invalid_rows=result.total_rows - len(valid),
            errors=result.errors,
            valid_items=[self.transform_for_preview(r.data, context) for r in valid],
            error=result.error,
        )

    def execute_import(self, content: bytes, tenant_id: UUID, user_id: Optional[UUID] = None) -> ImportResultDTO:
        """Import the valid rows; invalid rows are reported and skipped."""
        context = ImportContext(tenant_id=tenant_id, user_id=user_id)
        result = self.parse_file(content, context)
        if result.error:
            return ImportResultDTO(success=False, imported_count=0, skipped_count=0, error=result.error)

        valid = result.valid_rows
        skipped = result.total_rows - len(valid)
        if not valid:
            return ImportResultDTO(
                success=False, imported_count=0, skipped_count=skipped,
                errors=result.errors, error='No valid rows to import',
            )

        items = [self.transform_for_import(r.data, context) for r in valid]
        imported = 0
        for start in range(0, len(items), self.batch_size):
            with transaction.atomic():
                imported += self.import_rows(items[start:start + self.batch_size], context)

        logger.info(
            f"Imported {imported} {self.entity_name_plural.lower()} for tenant {tenant_id} "
            f"({skipped} rows skipped)"
        )
        return ImportResultDTO(success=True, imported_count=imported, skipped_count=skipped, errors=result.errors)
