from django.urls import path
from .views import (
    category_list_create, category_detail, category_stats,
    product_list_create, product_detail, product_adjust_stock, product_stats
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/stats/', category_stats, name='category-stats'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/stats/', product_stats, name='product-stats'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/adjust-stock/', product_adjust_stock, name='product-adjust-stock'),
]
