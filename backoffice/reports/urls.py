from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
    path('reports/orders-by-day/', views.orders_by_day, name='reports-orders-by-day'),
    path('reports/revenue-by-month/', views.revenue_by_month, name='reports-revenue-by-month'),
    path('reports/status-distribution/', views.status_distribution, name='reports-status-distribution'),
    path('reports/organization-stats/', views.organization_stats, name='reports-organization-stats'),
]
