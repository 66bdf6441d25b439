import logging
import uuid
from django.utils.deprecation import MiddlewareMixin
from django.core.exceptions import PermissionDenied

logger = logging.getLogger(__name__)


class TenantMiddleware(MiddlewareMixin):
    """
    Sets the current tenant on the request and enforces tenant isolation.

    - Regular users: bound to request.user.tenant_id
    - Superusers: may switch tenant via the X-Tenant-ID header
    """

    def process_request(self, request):
        request.tenant_id = None

        if not (hasattr(request, 'user') and request.user.is_authenticated):
            return

        user = request.user
        request.tenant_id = user.tenant_id

        if user.is_superuser:
            header_tenant = request.headers.get('X-Tenant-ID')
            if header_tenant:
                try:
                    request.tenant_id = uuid.UUID(header_tenant)
                except ValueError:
                    logger.warning(f"Invalid X-Tenant-ID header: {header_tenant}")

    def process_view(self, request, view_func, view_args, view_kwargs):
        """
        A `tenant_id` URL parameter must match the resolved tenant.
        """
        if not (hasattr(request, 'user') and request.user.is_authenticated):
            return None
        if request.user.is_superuser:
            return None

        url_tenant_id = view_kwargs.get('tenant_id')
        if url_tenant_id and str(url_tenant_id) != str(request.tenant_id):
            logger.warning(f"User {request.user.id} tried to access tenant {url_tenant_id}")
            raise PermissionDenied("You do not have access to this tenant.")

        return None
