from django.contrib import admin
from .models import Order, OrderDetail


class OrderDetailInline(admin.TabularInline):
    model = OrderDetail
    extra = 0
    readonly_fields = ['subtotal']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'organization', 'client', 'status', 'total', 'delivery_date', 'created_at']
    list_filter = ['organization', 'status', 'created_at']
    search_fields = ['client__first_name', 'client__last_name', 'delivery_address']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [OrderDetailInline]
