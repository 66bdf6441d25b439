"""
URL configuration for the Shepherd project.
"""
from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from ninja import NinjaAPI

api = NinjaAPI(
    title="Shepherd API",
    version="1.0.0",
    description="Multi-tenant church management API",
    docs_url="/docs",
)

from apps.identity.api import router as identity_router
from apps.tenants.api import router as tenants_router
from apps.members.api import router as members_router
from apps.notifications.api import router as notifications_router
from apps.scheduler.api import router as scheduler_router
from apps.ledger.api import router as ledger_router
from apps.imports.api import router as imports_router
from apps.audit.api import router as audit_router

api.add_router("/identity/", identity_router)
api.add_router("/tenants/", tenants_router)
api.add_router("/members/", members_router)
api.add_router("/notifications/", notifications_router)
api.add_router("/scheduler/", scheduler_router)
api.add_router("/ledger/", ledger_router)
api.add_router("/imports/", imports_router)
api.add_router("/audit/", audit_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(
        getattr(settings, 'MEDIA_URL', '/media/'),
        document_root=getattr(settings, 'MEDIA_ROOT', settings.BASE_DIR / 'media')
    )
