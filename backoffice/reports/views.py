import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import ValidationFailed
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import success_response
from . import queries

logger = logging.getLogger('backoffice.reports')


def _int_param(request, name, default, maximum):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(f'{name} must be a whole number', code='INVALID_PARAMETER')
    if value < 1 or value > maximum:
        raise ValidationFailed(f'{name} must be between 1 and {maximum}', code='INVALID_PARAMETER')
    return value


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def dashboard(request):
    """Dashboard cards"""
    days = _int_param(request, 'days', 30, 365)
    logger.debug(f"User {request.user.username} requested dashboard ({days} days)")
    return success_response(queries.dashboard_summary(request.user.organization_id, days))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def orders_by_day(request):
    """Daily order counts for the orders chart"""
    days = _int_param(request, 'days', 7, 90)
    return success_response(queries.orders_by_day(request.user.organization_id, days))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def revenue_by_month(request):
    """Monthly revenue of delivered orders"""
    months = _int_param(request, 'months', 6, 24)
    return success_response(queries.revenue_by_month(request.user.organization_id, months))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def status_distribution(request):
    return success_response(queries.status_distribution(request.user.organization_id))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def organization_stats(request):
    return success_response(queries.organization_stats(request.user.organization_id))
