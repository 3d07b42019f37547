import django_filters
from django.db.models import Q
from .models import Courier, OrderAssignment


class CourierFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    available = django_filters.BooleanFilter(field_name='is_available')

    class Meta:
        model = Courier
        fields = ['search', 'available']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value) |
            Q(phone__icontains=value) |
            Q(email__icontains=value)
        )


class OrderAssignmentFilter(django_filters.FilterSet):
    courier = django_filters.NumberFilter(field_name='courier_id')
    order = django_filters.NumberFilter(field_name='order_id')
    status = django_filters.MultipleChoiceFilter(choices=OrderAssignment.STATUS_CHOICES)
    active = django_filters.BooleanFilter(method='filter_active')

    class Meta:
        model = OrderAssignment
        fields = ['courier', 'order', 'status', 'active']

    def filter_active(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(status__in=OrderAssignment.ACTIVE_STATUSES)
        return queryset.exclude(status__in=OrderAssignment.ACTIVE_STATUSES)
