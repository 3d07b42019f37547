import django_filters
from django.db.models import Q
from .models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Order.STATUS_CHOICES)
    client = django_filters.NumberFilter(field_name='client_id')
    courier = django_filters.NumberFilter(field_name='assignment__courier_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    min_total = django_filters.NumberFilter(field_name='total', lookup_expr='gte')
    max_total = django_filters.NumberFilter(field_name='total', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Order
        fields = ['status', 'client', 'courier', 'date_from', 'date_to', 'min_total', 'max_total', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        condition = (
            Q(client__first_name__icontains=value) |
            Q(client__last_name__icontains=value) |
            Q(client__phone__icontains=value) |
            Q(delivery_address__icontains=value)
        )
        if value.isdigit():
            condition |= Q(pk=int(value))
        return queryset.filter(condition)
