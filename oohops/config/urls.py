"""
URL configuration for the oohops project.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "OOH Ops Admin Panel"
admin.site.site_title = "OOH Ops Admin Portal"
admin.site.index_title = "Welcome to OOH Ops Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('oohops.core.urls')),
    path('api/v1/', include('oohops.clients.urls')),
    path('api/v1/', include('oohops.assets.urls')),
    path('api/v1/', include('oohops.pricing.urls')),
    path('api/v1/', include('oohops.plans.urls')),
    path('api/v1/', include('oohops.campaigns.urls')),
    path('api/v1/', include('oohops.finance.urls')),
    path('api/v1/', include('oohops.powerbills.urls')),
    path('api/v1/', include('oohops.portal.urls')),
    path('api/v1/', include('oohops.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
