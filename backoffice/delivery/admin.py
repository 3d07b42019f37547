from django.contrib import admin
from .models import Courier, OrderAssignment


@admin.register(Courier)
class CourierAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'phone', 'organization', 'is_available', 'created_at']
    list_filter = ['organization', 'is_available']
    search_fields = ['first_name', 'last_name', 'phone', 'email']
    ordering = ['first_name', 'last_name']


@admin.register(OrderAssignment)
class OrderAssignmentAdmin(admin.ModelAdmin):
    list_display = ['order', 'courier', 'status', 'assigned_at']
    list_filter = ['status', 'assigned_at']
    search_fields = ['courier__first_name', 'courier__last_name']
    ordering = ['-assigned_at']
    readonly_fields = ['assigned_at', 'updated_at']
