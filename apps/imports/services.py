"""
Core services for Imports app.
Upload checks and the preview/execute flow for onboarding workbooks.
"""
import logging
from typing import Optional, Tuple
from uuid import UUID

from django.core.files.uploadedfile import UploadedFile

from apps.ledger.models import FinancialSource, Fund
from apps.members.models import MembershipStatus

from .dtos import OnboardingImportResultDTO, OnboardingPreviewDTO, ValidationResultDTO
from .onboarding import apply_onboarding_import
from .parser import get_import_summary, parse_import_file
from .validator import quick_validate, validate_import_data

logger = logging.getLogger(__name__)


MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
ALLOWED_EXTENSIONS = ('.xlsx',)


class ImportValidationError(ValueError):
    """Raised when an onboarding workbook has errors and nothing was imported."""

    def __init__(self, preview: OnboardingPreviewDTO):
        super().__init__(preview.message)
        self.preview = preview


def validate_upload_file(file: UploadedFile) -> Tuple[bool, Optional[str]]:
    """
    Validate an uploaded workbook.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file.size > MAX_FILE_SIZE:
        return False, f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)} MB"
    name = (file.name or '').lower()
    if not name.endswith(ALLOWED_EXTENSIONS):
        return False, f"Invalid file type: {file.name}. Allowed: .xlsx"
    return True, None


def _validate_for_tenant(tenant_id: UUID, data) -> ValidationResultDTO:
    statuses = []
    for code, name in MembershipStatus.objects.filter(tenant_id=tenant_id).values_list('code', 'name'):
        statuses.extend([code, name])
    return validate_import_data(
        data,
        known_statuses=statuses,
        known_funds=Fund.objects.filter(tenant_id=tenant_id).values_list('name', flat=True),
        known_sources=FinancialSource.objects.filter(tenant_id=tenant_id).values_list('name', flat=True),
    )


def preview_onboarding(tenant_id: UUID, content: bytes) -> OnboardingPreviewDTO:
    parsed = parse_import_file(content)
    if parsed.data is None:
        return OnboardingPreviewDTO(
            success=False,
            summary={},
            message=parsed.errors[0].message,
            errors=parsed.errors,
            warnings=parsed.warnings,
        )

    validation = _validate_for_tenant(tenant_id, parsed.data)
    errors = parsed.errors + validation.errors
    quick = quick_validate(parsed.data, ValidationResultDTO(is_valid=not errors, errors=errors))
    return OnboardingPreviewDTO(
        success=not errors,
        summary=get_import_summary(parsed.data),
        message=quick.summary,
        errors=errors,
        warnings=parsed.warnings + validation.warnings,
    )


def execute_onboarding(tenant_id: UUID, content: bytes, user_id: Optional[UUID] = None) -> OnboardingImportResultDTO:
    """
    Parse, validate and apply an onboarding workbook.
    Raises ImportValidationError when the workbook has errors.
    """
    preview = preview_onboarding(tenant_id, content)
    if not preview.success:
        logger.warning(f"Rejected onboarding import for tenant {tenant_id}: {preview.message}")
        raise ImportValidationError(preview)
    parsed = parse_import_file(content)
    return apply_onboarding_import(tenant_id, parsed.data, user_id=user_id)
