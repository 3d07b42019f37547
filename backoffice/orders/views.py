import logging
from decimal import Decimal

from django.db.models import Avg, Count, Q, Sum
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import HANDLED_EXCEPTIONS
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import error_response, success_response, validation_error_response
from backoffice.core.utils import create_audit_log, get_tenant_object, paginate
from .filters import OrderFilter
from .models import Order
from .serializers import OrderSerializer, OrderListSerializer
from .services import create_order, update_order, delete_order, preview_order, quantize

logger = logging.getLogger('backoffice.orders')


def _order_queryset():
    return Order.objects.select_related('client', 'created_by', 'assignment__courier') \
        .prefetch_related('details__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def order_list_create(request):
    """List orders (filterable, paginated) or create an order with its lines"""
    try:
        organization = request.user.organization
        if request.method == 'GET':
            queryset = Order.objects.filter(organization=organization) \
                .select_related('client', 'assignment__courier') \
                .annotate(item_count=Count('details'))
            order_filter = OrderFilter(request.query_params, queryset=queryset)
            if not order_filter.is_valid():
                return validation_error_response(order_filter.errors)
            return success_response(paginate(request, order_filter.qs.order_by('-created_at'), OrderListSerializer))

        logger.info(f"User {request.user.username} creating order with data: {request.data}")
        order = create_order(organization, request.user, request.data)
        create_audit_log(request=request, action='order_create', model_name='Order', object_id=order.id,
                         object_name=str(order),
                         changes={'client': order.client_id, 'total': str(order.total), 'lines': order.details.count()})
        return success_response(
            OrderSerializer(_order_queryset().get(pk=order.pk)).data,
            message='Order created',
            status_code=status.HTTP_201_CREATED
        )
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in order_list_create: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    try:
        order = get_tenant_object(Order, request, pk, code='ORDER_NOT_FOUND', queryset=_order_queryset())

        if request.method == 'GET':
            return success_response(OrderSerializer(order).data)

        if request.method == 'DELETE':
            logger.info(f"User {request.user.username} deleting order {pk}")
            object_name = str(order)
            changes = {'status': order.status, 'total': str(order.total)}
            delete_order(order)
            create_audit_log(request=request, action='delete', model_name='Order', object_id=pk,
                             object_name=object_name, changes=changes)
            return success_response(None, message='Order deleted')

        logger.info(f"User {request.user.username} updating order {pk} with data: {request.data}")
        previous = {'status': order.status, 'total': str(order.total)}
        order = update_order(order, request.data, user=request.user)
        action = 'order_cancel' if order.status == Order.STATUS_CANCELLED and previous['status'] != order.status \
            else 'order_update'
        create_audit_log(request=request, action=action, model_name='Order', object_id=order.id,
                         object_name=str(order),
                         changes={'old': previous, 'new': {'status': order.status, 'total': str(order.total)}})
        return success_response(OrderSerializer(_order_queryset().get(pk=order.pk)).data)
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in order_detail for pk {pk}: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def order_validate(request):
    """Check an order draft (stock per line and computed total) without saving it"""
    result = preview_order(request.user.organization, request.data)
    return success_response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def order_stats(request):
    """Order counts per status and revenue figures"""
    orders = Order.objects.filter(organization_id=request.user.organization_id)
    counts = dict(orders.order_by().values_list('status').annotate(total=Count('id')))
    delivered = orders.filter(status=Order.STATUS_DELIVERED).aggregate(revenue=Sum('total'), average=Avg('total'))
    active = orders.filter(~Q(status__in=Order.TERMINAL_STATUSES)).aggregate(value=Sum('total'))
    return success_response({
        'total': orders.count(),
        'by_status': {value: counts.get(value, 0) for value, _ in Order.STATUS_CHOICES},
        'revenue': str(quantize(delivered['revenue'] or Decimal('0'))),
        'average_ticket': str(quantize(Decimal(delivered['average'] or 0))),
        'open_value': str(quantize(active['value'] or Decimal('0'))),
    })
