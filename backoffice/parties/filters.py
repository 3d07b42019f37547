import django_filters
from django.db.models import Q
from .models import Client


class ClientFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    has_orders = django_filters.BooleanFilter(field_name='orders', lookup_expr='isnull', exclude=True, distinct=True)

    class Meta:
        model = Client
        fields = ['search', 'has_orders']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value) |
            Q(phone__icontains=value) |
            Q(email__icontains=value) |
            Q(address__icontains=value)
        )
