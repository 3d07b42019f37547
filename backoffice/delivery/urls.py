from django.urls import path
from .views import (
    courier_list_create, courier_detail,
    assignment_list_create, assignment_detail, assignment_by_order
)

urlpatterns = [
    # Courier endpoints
    path('couriers/', courier_list_create, name='courier-list-create'),
    path('couriers/<int:pk>/', courier_detail, name='courier-detail'),

    # Assignment endpoints
    path('assignments/', assignment_list_create, name='assignment-list-create'),
    path('assignments/<int:pk>/', assignment_detail, name='assignment-detail'),
    path('assignments/by-order/<int:order_id>/', assignment_by_order, name='assignment-by-order'),
]
