"""
Request guards shared by every API router.

Endpoints are declared with auth=None and call these helpers, so both
session logins (admin, tests) and JWT cookies resolve to request.user.
"""
from functools import wraps
from typing import Callable
from uuid import UUID
from ninja.errors import HttpError
from django.http import HttpRequest
from .permissions import get_user_permissions


def require_auth(request: HttpRequest):
    """Ensure user is authenticated."""
    if not request.user.is_authenticated:
        raise HttpError(401, "Unauthorized")
    return request.user


def require_permission(request: HttpRequest, permission: str, scope_id: UUID = None):
    """Ensure user has the required permission."""
    require_auth(request)
    if permission not in get_user_permissions(request.user, scope_id=scope_id):
        raise HttpError(403, f"Permission denied: {permission}")


def get_tenant_id(request: HttpRequest) -> UUID:
    """
    Tenant for the current request.

    TenantMiddleware resolves it (including the superuser X-Tenant-ID switch);
    the user's own tenant is the fallback when the middleware did not run.
    """
    tenant_id = getattr(request, 'tenant_id', None) or request.user.tenant_id
    if not tenant_id:
        raise HttpError(400, "User has no tenant context")
    return tenant_id


def has_permission(required_perm: str):
    """
    Decorator to enforce a specific permission on a Django Ninja endpoint.

    Usage:
        @router.get("/some-path", auth=None)
        @has_permission(Permissions.SOME_PERM)
        def my_view(request):
            ...
    """
    def decorator(view_func: Callable):
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs):
            require_permission(request, required_perm)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
