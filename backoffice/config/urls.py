"""
URL configuration for the delivery back-office project.

Every app mounts its function views under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Delivery Back-Office Admin Panel"
admin.site.site_title = "Delivery Back-Office Admin Portal"
admin.site.index_title = "Welcome to the Delivery Back-Office"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.organizations.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.parties.urls')),
    path('api/v1/', include('backoffice.orders.urls')),
    path('api/v1/', include('backoffice.delivery.urls')),
    path('api/v1/', include('backoffice.notifications.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
]
