from django.urls import path
from .views import (
    notification_list_create, notification_detail, notification_mark_all_read,
    notification_summary, notification_preferences
)

urlpatterns = [
    path('notifications/', notification_list_create, name='notification-list-create'),
    path('notifications/mark-all-read/', notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/summary/', notification_summary, name='notification-summary'),
    path('notifications/preferences/', notification_preferences, name='notification-preferences'),
    path('notifications/<int:pk>/', notification_detail, name='notification-detail'),
]
