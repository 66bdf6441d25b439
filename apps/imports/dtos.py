"""DTOs for Imports app - results of parsing, validating and applying workbooks."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ImportErrorDTO:
    sheet: str
    row: int
    message: str
    column: str = ""


@dataclass
class ParsedImportData:
    """Rows from an onboarding workbook, one list of dicts per sheet."""
    members: List[dict] = field(default_factory=list)
    membership_statuses: List[dict] = field(default_factory=list)
    financial_sources: List[dict] = field(default_factory=list)
    funds: List[dict] = field(default_factory=list)
    income_categories: List[dict] = field(default_factory=list)
    expense_categories: List[dict] = field(default_factory=list)
    budget_categories: List[dict] = field(default_factory=list)
    opening_balances: List[dict] = field(default_factory=list)


@dataclass(frozen=True)
class ParseResultDTO:
    success: bool
    data: Optional[ParsedImportData]
    errors: List[ImportErrorDTO] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationResultDTO:
    is_valid: bool
    errors: List[ImportErrorDTO] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class QuickValidationDTO:
    has_errors: bool
    error_count: int
    summary: str


@dataclass(frozen=True)
class OnboardingPreviewDTO:
    success: bool
    summary: Dict[str, int]
    message: str
    errors: List[ImportErrorDTO] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OnboardingImportResultDTO:
    created: Dict[str, int]
    skipped: Dict[str, int]
    opening_balance_entries: List[str] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return sum(self.created.values())


@dataclass(frozen=True)
class ParsedRowDTO:
    row_number: int
    data: Dict[str, Any]
    is_valid: bool
    errors: List[ImportErrorDTO] = field(default_factory=list)


@dataclass(frozen=True)
class FileParseResultDTO:
    total_rows: int
    rows: List[ParsedRowDTO] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def valid_rows(self) -> List[ParsedRowDTO]:
        return [r for r in self.rows if r.is_valid]

    @property
    def errors(self) -> List[ImportErrorDTO]:
        return [e for r in self.rows for e in r.errors]


@dataclass(frozen=True)
class PreviewResultDTO:
    success: bool
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: List[ImportErrorDTO] = field(default_factory=list)
    valid_items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class ImportResultDTO:
    success: bool
    imported_count: int
    skipped_count: int
    errors: List[ImportErrorDTO] = field(default_factory=list)
    error: Optional[str] = None
