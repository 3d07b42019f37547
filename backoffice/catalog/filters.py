import django_filters
from django.db.models import F, Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter set for product lists and product search"""
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.NumberFilter(field_name='category_id')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock')
    out_of_stock = django_filters.BooleanFilter(method='filter_out_of_stock')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'category', 'low_stock', 'out_of_stock', 'in_stock', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(description__icontains=value) |
            Q(category__name__icontains=value)
        )

    def filter_low_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock__gt=0, stock__lte=F('low_stock_threshold'))
        return queryset

    def filter_out_of_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock=0)
        return queryset

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock__gt=0)
        return queryset
