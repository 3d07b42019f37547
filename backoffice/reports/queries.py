"""
Report queries, cached per organization (see core.cache_utils)
"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Count, DecimalField, F, Sum
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from backoffice.catalog.models import Category, Product
from backoffice.core.cache_utils import cached_org_query, REPORTS_CACHE_TTL, STATS_CACHE_TTL
from backoffice.delivery.models import Courier
from backoffice.orders.models import Order
from backoffice.parties.models import Client

User = get_user_model()


def _money(value):
    return str((value if value is not None else Decimal('0')).quantize(Decimal('0.01')))


@cached_org_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="dashboard")
def dashboard_summary(organization_id, days):
    since = timezone.now() - timedelta(days=days)
    orders = Order.objects.filter(organization_id=organization_id)
    recent = orders.filter(created_at__gte=since)
    delivered = recent.filter(status=Order.STATUS_DELIVERED)

    return {
        'period_days': days,
        'total_orders': recent.count(),
        'revenue': _money(delivered.aggregate(total=Sum('total', output_field=DecimalField()))['total']),
        'delivered_orders': delivered.count(),
        'pending_orders': orders.filter(status=Order.STATUS_PENDING).count(),
        'in_progress_orders': orders.filter(status__in=[Order.STATUS_IN_PROCESS, Order.STATUS_EN_ROUTE]).count(),
        'active_clients': Client.objects.filter(
            organization_id=organization_id, orders__created_at__gte=since
        ).distinct().count(),
        'available_couriers': Courier.objects.filter(organization_id=organization_id, is_available=True).count(),
        'low_stock_products': Product.objects.filter(
            organization_id=organization_id, stock__lte=F('low_stock_threshold')
        ).count(),
    }


@cached_org_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="orders_by_day")
def orders_by_day(organization_id, days):
    since = timezone.localdate() - timedelta(days=days - 1)
    rows = Order.objects.filter(organization_id=organization_id, created_at__date__gte=since) \
        .annotate(date=TruncDate('created_at')).values('date') \
        .annotate(count=Count('id'), total=Sum('total', output_field=DecimalField())).order_by('date')
    by_date = {row['date']: row for row in rows}

    series = []
    for offset in range(days):
        day = since + timedelta(days=offset)
        row = by_date.get(day)
        series.append({
            'date': day.isoformat(),
            'count': row['count'] if row else 0,
            'total': _money(row['total'] if row else None),
        })
    return series


@cached_org_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="revenue_by_month")
def revenue_by_month(organization_id, months):
    since = (timezone.localdate() - timedelta(days=31 * months)).replace(day=1)
    rows = Order.objects.filter(
        organization_id=organization_id, status=Order.STATUS_DELIVERED, created_at__date__gte=since
    ).annotate(month=TruncMonth('created_at')).values('month') \
        .annotate(revenue=Sum('total', output_field=DecimalField()), orders=Count('id')).order_by('month')
    return [
        {'month': row['month'].strftime('%Y-%m'), 'revenue': _money(row['revenue']), 'orders': row['orders']}
        for row in rows
    ]


@cached_org_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="status_distribution")
def status_distribution(organization_id):
    counts = dict(
        Order.objects.filter(organization_id=organization_id).order_by()
        .values_list('status').annotate(count=Count('id'))
    )
    total = sum(counts.values())
    return [
        {
            'status': value,
            'label': label,
            'count': counts.get(value, 0),
            'percentage': round(counts.get(value, 0) * 100 / total, 1) if total else 0,
        }
        for value, label in Order.STATUS_CHOICES
    ]


@cached_org_query(cache_ttl=STATS_CACHE_TTL, key_prefix="organization_stats")
def organization_stats(organization_id):
    return {
        'clients': Client.objects.filter(organization_id=organization_id).count(),
        'products': Product.objects.filter(organization_id=organization_id).count(),
        'categories': Category.objects.filter(organization_id=organization_id).count(),
        'couriers': Courier.objects.filter(organization_id=organization_id).count(),
        'orders': Order.objects.filter(organization_id=organization_id).count(),
        'users': User.objects.filter(organization_id=organization_id).count(),
    }
