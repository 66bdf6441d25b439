"""
Identity API endpoints with JWT authentication.

Provides login, logout, token refresh, user management and role
administration endpoints. JWT tokens travel in httpOnly cookies.
"""
import os
from typing import List, Optional
from uuid import UUID
from ninja import Router, Schema
from django.conf import settings
from django.http import HttpRequest, HttpResponse
from ninja.errors import HttpError
from django.contrib.auth import authenticate

from apps.audit.audit_service import log_action, AuditAction
from .models import User
from .dtos import (
    UserDTO, UserCreate, UserUpdate, RoleDTO, RoleIn, RoleUpdateIn,
    RoleAssignmentIn, RoleAssignmentDTO,
)
from .decorators import require_auth, require_permission, get_tenant_id
from .permissions import ALL_PERMISSIONS, Permissions
from .services import get_user_dto, create_user, list_users, update_user, soft_delete_user
from . import rbac_service
from .jwt_auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    create_token_pair,
    create_access_token,
    decode_token,
    get_access_token_cookie_settings,
    get_refresh_token_cookie_settings,
)

router = Router(tags=["Identity"])


# =============================================================================
# Schemas
# =============================================================================

class LoginSchema(Schema):
    username: str
    password: str


class TokenResponse(Schema):
    success: bool
    user: Optional[UserDTO] = None
    message: Optional[str] = None


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production (Lambda or DEBUG=False)."""
    return bool(os.getenv('AWS_LAMBDA_FUNCTION_NAME')) or not settings.DEBUG


def _json_response(data: TokenResponse) -> HttpResponse:
    return HttpResponse(data.model_dump_json(), content_type='application/json')


def _get_tenant_user(user_id: UUID, tenant_id: UUID) -> User:
    target = User.objects.filter(id=user_id, tenant_id=tenant_id).first()
    if target is None:
        raise HttpError(404, "User not found")
    return target


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.post("/login", response=TokenResponse, auth=None)
def login_user(request: HttpRequest, payload: LoginSchema):
    """
    Authenticate user and set JWT tokens in httpOnly cookies.
    """
    user = authenticate(request, username=payload.username, password=payload.password)

    if user is None:
        raise HttpError(401, "Invalid username or password")

    if not user.is_active:
        raise HttpError(401, "Account is disabled")

    access_token, refresh_token = create_token_pair(user.id, user.tenant_id)

    response = _json_response(TokenResponse(success=True, user=get_user_dto(user.id)))

    prod = is_production()
    response.set_cookie(ACCESS_COOKIE, access_token, **get_access_token_cookie_settings(prod))
    response.set_cookie(REFRESH_COOKIE, refresh_token, **get_refresh_token_cookie_settings(prod))

    if user.tenant_id:
        log_action(
            tenant_id=user.tenant_id,
            action=AuditAction.USER_LOGIN,
            target_type="User",
            target_id=user.id,
            target_label=str(user),
            performed_by=user,
            context={"ip": request.META.get('REMOTE_ADDR')},
        )

    return response


@router.post("/logout", response=TokenResponse, auth=None)
def logout_user(request: HttpRequest):
    """Clear authentication cookies."""
    response = _json_response(TokenResponse(success=True, message="Logged out"))
    response.delete_cookie(ACCESS_COOKIE, path='/')
    response.delete_cookie(REFRESH_COOKIE, path='/')
    return response


@router.post("/refresh", response=TokenResponse, auth=None)
def refresh_token(request: HttpRequest):
    """Issue a new access token from the refresh token cookie."""
    refresh_token_value = request.COOKIES.get(REFRESH_COOKIE)

    if not refresh_token_value:
        raise HttpError(401, "No refresh token")

    payload = decode_token(refresh_token_value, expected_type='refresh')
    if not payload:
        raise HttpError(401, "Invalid refresh token")

    try:
        user = User.objects.get(id=UUID(payload['sub']), is_active=True)
    except (ValueError, User.DoesNotExist):
        raise HttpError(401, "Invalid refresh token")

    response = _json_response(TokenResponse(success=True, user=get_user_dto(user.id)))
    response.set_cookie(
        ACCESS_COOKIE,
        create_access_token(user.id, user.tenant_id),
        **get_access_token_cookie_settings(is_production()),
    )
    return response


@router.get("/me", response=UserDTO, auth=None)
def get_me(request: HttpRequest):
    """Current authenticated user's profile, roles and effective permissions."""
    user = require_auth(request)
    user_dto = get_user_dto(user.id)
    if not user_dto:
        raise HttpError(404, "User not found")
    return user_dto


@router.get("/permissions", response=List[str], auth=None)
def list_permission_catalogue(request: HttpRequest):
    """Every permission code a role may contain."""
    require_permission(request, Permissions.ROLES_VIEW)
    return ALL_PERMISSIONS


# =============================================================================
# User Management Endpoints
# =============================================================================

@router.post("/users", response=UserDTO, auth=None)
def create_tenant_user(request: HttpRequest, payload: UserCreate):
    """Create a new user in the tenant."""
    require_permission(request, Permissions.USERS_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        user_dto = create_user(tenant_id, payload, assigned_by_id=request.user.id)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_USER,
        target_type="User",
        target_id=user_dto.id,
        target_label=user_dto.username,
        performed_by=request.user,
        context={"roles": list(payload.roles)},
    )
    return user_dto


@router.get("/users", response=List[UserDTO], auth=None)
def list_tenant_users(request: HttpRequest):
    require_permission(request, Permissions.USERS_VIEW)
    return list_users(get_tenant_id(request))


@router.put("/users/{user_id}", response=UserDTO, auth=None)
def update_tenant_user(request: HttpRequest, user_id: UUID, payload: UserUpdate):
    require_permission(request, Permissions.USERS_MANAGE)
    tenant_id = get_tenant_id(request)
    _get_tenant_user(user_id, tenant_id)

    updated = update_user(user_id, payload.dict(exclude_unset=True))
    if not updated:
        raise HttpError(404, "User not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.UPDATE_USER,
        target_type="User",
        target_id=user_id,
        target_label=updated.username,
        performed_by=request.user,
        context=payload.dict(exclude_unset=True),
    )
    return updated


@router.delete("/users/{user_id}", response={204: None}, auth=None)
def delete_tenant_user(request: HttpRequest, user_id: UUID):
    """Deactivate a user of the tenant."""
    require_permission(request, Permissions.USERS_MANAGE)
    tenant_id = get_tenant_id(request)
    target = _get_tenant_user(user_id, tenant_id)

    if target.id == request.user.id:
        raise HttpError(400, "You cannot deactivate your own account")

    soft_delete_user(user_id)
    log_action(
        tenant_id=tenant_id,
        action=AuditAction.DEACTIVATE_USER,
        target_type="User",
        target_id=user_id,
        target_label=str(target),
        performed_by=request.user,
    )
    return 204, None


# =============================================================================
# Role Endpoints
# =============================================================================

@router.get("/roles", response=List[RoleDTO], auth=None)
def list_tenant_roles(request: HttpRequest):
    require_permission(request, Permissions.ROLES_VIEW)
    return rbac_service.list_roles(get_tenant_id(request))


@router.post("/roles", response=RoleDTO, auth=None)
def create_tenant_role(request: HttpRequest, payload: RoleIn):
    require_permission(request, Permissions.ROLES_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        role = rbac_service.create_role(
            tenant_id=tenant_id,
            code=payload.code,
            name=payload.name,
            scope=payload.scope,
            permissions=payload.permissions,
            description=payload.description,
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.CREATE_ROLE,
        target_type="Role",
        target_id=role.id,
        target_label=role.name,
        performed_by=request.user,
        context={"permissions": role.permissions, "scope": role.scope},
    )
    return role


@router.put("/roles/{role_id}", response=RoleDTO, auth=None)
def update_tenant_role(request: HttpRequest, role_id: UUID, payload: RoleUpdateIn):
    require_permission(request, Permissions.ROLES_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        role = rbac_service.update_role(role_id, tenant_id, payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if role is None:
        raise HttpError(404, "Role not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.UPDATE_ROLE,
        target_type="Role",
        target_id=role.id,
        target_label=role.name,
        performed_by=request.user,
        context=payload.dict(exclude_unset=True),
    )
    return role


@router.delete("/roles/{role_id}", response={204: None}, auth=None)
def delete_tenant_role(request: HttpRequest, role_id: UUID):
    require_permission(request, Permissions.ROLES_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        deleted = rbac_service.delete_role(role_id, tenant_id)
    except ValueError as e:
        raise HttpError(400, str(e))
    if not deleted:
        raise HttpError(404, "Role not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.DELETE_ROLE,
        target_type="Role",
        target_id=role_id,
        performed_by=request.user,
    )
    return 204, None


@router.post("/role-assignments", response=RoleAssignmentDTO, auth=None)
def assign_tenant_role(request: HttpRequest, payload: RoleAssignmentIn):
    require_permission(request, Permissions.ROLES_MANAGE)
    tenant_id = get_tenant_id(request)

    try:
        assignment = rbac_service.assign_role(
            user_id=payload.user_id,
            role_id=payload.role_id,
            tenant_id=tenant_id,
            scope_id=payload.scope_id,
            assigned_by_id=request.user.id,
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.ASSIGN_ROLE,
        target_type="User",
        target_id=payload.user_id,
        target_label=assignment.role_code,
        performed_by=request.user,
        context={"role_id": str(payload.role_id), "scope_id": str(payload.scope_id) if payload.scope_id else None},
    )
    return assignment


@router.get("/users/{user_id}/role-assignments", response=List[RoleAssignmentDTO], auth=None)
def list_tenant_user_assignments(request: HttpRequest, user_id: UUID):
    require_permission(request, Permissions.ROLES_VIEW)
    tenant_id = get_tenant_id(request)
    _get_tenant_user(user_id, tenant_id)
    return rbac_service.list_user_assignments(user_id, tenant_id)


@router.delete("/role-assignments/{assignment_id}", response={204: None}, auth=None)
def revoke_tenant_role(request: HttpRequest, assignment_id: UUID):
    require_permission(request, Permissions.ROLES_MANAGE)
    tenant_id = get_tenant_id(request)

    if not rbac_service.revoke_role(assignment_id, tenant_id):
        raise HttpError(404, "Assignment not found")

    log_action(
        tenant_id=tenant_id,
        action=AuditAction.REVOKE_ROLE,
        target_type="RoleAssignment",
        target_id=assignment_id,
        performed_by=request.user,
    )
    return 204, None
