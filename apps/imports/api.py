"""
API Router for Imports app.
Excel templates, onboarding workbook import, member import and export.
"""
from ninja import File, Router
from ninja.errors import HttpError
from ninja.files import UploadedFile
from django.http import HttpRequest, HttpResponse
from django.utils import timezone

from apps.audit.audit_service import log_action, AuditAction
from apps.identity.decorators import require_permission, get_tenant_id
from apps.identity.permissions import Permissions
from .dtos import ImportResultDTO, OnboardingImportResultDTO, OnboardingPreviewDTO, PreviewResultDTO
from .excel import XLSX_CONTENT_TYPE
from .export import export_members_workbook
from .member_import import MemberImportService
from .template import generate_onboarding_template
from . import services

router = Router(tags=["Imports"])


def _xlsx_response(content: bytes, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _read_upload(file: UploadedFile) -> bytes:
    is_valid, error = services.validate_upload_file(file)
    if not is_valid:
        raise HttpError(400, error)
    return file.read()


# =============================================================================
# Templates
# =============================================================================

@router.get("/templates/onboarding", auth=None)
def download_onboarding_template(request: HttpRequest):
    require_permission(request, Permissions.IMPORTS_MANAGE)
    return _xlsx_response(generate_onboarding_template(), "onboarding_template.xlsx")


@router.get("/templates/members", auth=None)
def download_member_template(request: HttpRequest):
    require_permission(request, Permissions.IMPORTS_MANAGE)
    return _xlsx_response(MemberImportService().generate_template(), "member_import_template.xlsx")


# =============================================================================
# Onboarding Workbook
# =============================================================================

@router.post("/onboarding/preview", response=OnboardingPreviewDTO, auth=None)
def preview_onboarding(request: HttpRequest, file: UploadedFile = File(...)):
    """Parse and validate an onboarding workbook without saving anything."""
    require_permission(request, Permissions.IMPORTS_MANAGE)
    content = _read_upload(file)
    return services.preview_onboarding(get_tenant_id(request), content)


@router.post(
    "/onboarding/execute",
    response={200: OnboardingImportResultDTO, 400: OnboardingPreviewDTO},
    auth=None,
)
def execute_onboarding(request: HttpRequest, file: UploadedFile = File(...)):
    require_permission(request, Permissions.IMPORTS_MANAGE)
    tenant_id = get_tenant_id(request)
    content = _read_upload(file)

    try:
        result = services.execute_onboarding(tenant_id, content, user_id=request.user.id)
    except services.ImportValidationError as e:
        return 400, e.preview
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.IMPORT_ONBOARDING,
        target_type="Tenant",
        target_id=tenant_id,
        target_label=file.name,
        performed_by=request.user,
        context={"created": result.created, "skipped": result.skipped},
    )
    return 200, result


# =============================================================================
# Members
# =============================================================================

@router.post("/members/preview", response=PreviewResultDTO, auth=None)
def preview_member_import(request: HttpRequest, file: UploadedFile = File(...)):
    require_permission(request, Permissions.IMPORTS_MANAGE)
    content = _read_upload(file)
    return MemberImportService().get_preview_result(content, get_tenant_id(request), request.user.id)


@router.post("/members/execute", response={200: ImportResultDTO, 400: ImportResultDTO}, auth=None)
def execute_member_import(request: HttpRequest, file: UploadedFile = File(...)):
    """Import the valid rows of a member workbook; rows with errors are skipped."""
    require_permission(request, Permissions.IMPORTS_MANAGE)
    tenant_id = get_tenant_id(request)
    content = _read_upload(file)

    result = MemberImportService().execute_import(content, tenant_id, request.user.id)
    if not result.success:
        return 400, result

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.IMPORT_MEMBERS,
        target_type="Tenant",
        target_id=tenant_id,
        target_label=file.name,
        performed_by=request.user,
        context={"imported": result.imported_count, "skipped": result.skipped_count},
    )
    return 200, result


@router.get("/members/export", auth=None)
def export_members(request: HttpRequest):
    require_permission(request, Permissions.MEMBERS_VIEW)
    tenant_id = get_tenant_id(request)
    content = export_members_workbook(tenant_id)

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.EXPORT_MEMBERS,
        target_type="Tenant",
        target_id=tenant_id,
        performed_by=request.user,
    )
    filename = f"members_{timezone.localdate().strftime('%Y%m%d')}.xlsx"
    return _xlsx_response(content, filename)
