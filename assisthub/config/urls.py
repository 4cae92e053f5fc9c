"""
URL configuration for the assist hub project.

Every app mounts its endpoints under ``api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Assist Hub Admin Panel"
admin.site.site_title = "Assist Hub Admin Portal"
admin.site.index_title = "Assist Hub"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('assisthub.core.urls')),
    path('api/v1/', include('assisthub.tags.urls')),
    path('api/v1/', include('assisthub.teams.urls')),
    path('api/v1/', include('assisthub.clients.urls')),
    path('api/v1/', include('assisthub.projects.urls')),
    path('api/v1/', include('assisthub.events.urls')),
    path('api/v1/', include('assisthub.notifications.urls')),
    path('api/v1/', include('assisthub.files.urls')),
    path('api/v1/', include('assisthub.dashboard.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
