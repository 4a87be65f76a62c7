from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path('admin/', admin.site.urls),

    # Core Apps
    path('api/users/', include('apps.accounts.urls')),
    path('api/', include('apps.catalog.urls')),
    path('api/', include('apps.orders.urls')),

    # Observability
    path('api/', include('apps.utils.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
]
