from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'description', 'created_at']
    list_filter = ['organization']
    search_fields = ['name', 'description']
    ordering = ['organization', 'name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'category', 'price', 'stock', 'low_stock_threshold', 'updated_at']
    list_filter = ['organization', 'category']
    search_fields = ['name', 'description']
    ordering = ['organization', 'name']
    readonly_fields = ['created_at', 'updated_at']
