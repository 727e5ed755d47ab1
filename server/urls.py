"""Main URL mapping configuration file."""

from django.contrib import admin
from django.urls import include, path

from server.apps.sharing.views import health

urlpatterns = [
    path('api/auth/', include('server.apps.guard.urls', namespace='guard')),
    path('api/', include('server.apps.sharing.urls', namespace='sharing')),
    path('health', health, name='health'),
    path('admin/', admin.site.urls),
]
