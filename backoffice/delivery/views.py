import logging

from django.db import transaction
from django.db.models import Count, Q
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from backoffice.core.exceptions import Conflict, HANDLED_EXCEPTIONS, NotFound, ValidationFailed
from backoffice.core.permissions import HasOrganization
from backoffice.core.responses import error_response, success_response, validation_error_response
from backoffice.core.utils import create_audit_log, get_tenant_object, paginate
from backoffice.orders.models import Order
from .filters import CourierFilter, OrderAssignmentFilter
from .models import Courier, OrderAssignment
from .serializers import CourierSerializer, OrderAssignmentSerializer, AssignmentCreateSerializer
from .services import assign_courier, update_assignment, delete_assignment

logger = logging.getLogger('backoffice.delivery')

ACTIVE_ASSIGNMENTS = Count('assignments', filter=Q(assignments__status__in=OrderAssignment.ACTIVE_STATUSES))


def _assignment_queryset(request):
    return OrderAssignment.objects.filter(order__organization_id=request.user.organization_id) \
        .select_related('order', 'courier')


# Courier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def courier_list_create(request):
    """List couriers of the organization or register a new courier"""
    organization = request.user.organization
    if request.method == 'GET':
        queryset = Courier.objects.filter(organization=organization).annotate(active_assignments=ACTIVE_ASSIGNMENTS) \
            .order_by('first_name', 'last_name')
        courier_filter = CourierFilter(request.query_params, queryset=queryset)
        if not courier_filter.is_valid():
            return validation_error_response(courier_filter.errors)
        return success_response(CourierSerializer(courier_filter.qs, many=True).data)

    logger.info(f"User {request.user.username} creating courier with data: {request.data}")
    serializer = CourierSerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        logger.warning(f"Courier creation validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    courier = serializer.save(organization=organization)
    create_audit_log(request=request, action='create', model_name='Courier',
                     object_id=courier.id, object_name=courier.full_name)
    return success_response(CourierSerializer(courier).data, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def courier_detail(request, pk):
    """Retrieve, update or delete a courier"""
    courier = get_tenant_object(
        Courier, request, pk, code='COURIER_NOT_FOUND',
        queryset=Courier.objects.annotate(active_assignments=ACTIVE_ASSIGNMENTS)
    )

    if request.method == 'GET':
        data = CourierSerializer(courier).data
        recent = courier.assignments.select_related('order', 'courier')[:10]
        data['recent_assignments'] = OrderAssignmentSerializer(recent, many=True).data
        return success_response(data)

    if request.method == 'DELETE':
        if courier.active_assignments:
            raise Conflict('Courier has active assignments', code='COURIER_HAS_ACTIVE_ASSIGNMENTS')
        logger.info(f"User {request.user.username} deleting courier {pk} ({courier.full_name})")
        try:
            with transaction.atomic():
                courier.delete()
        except ProtectedError:
            raise Conflict('Courier has delivery history and cannot be deleted', code='COURIER_HAS_ASSIGNMENTS')
        create_audit_log(request=request, action='delete', model_name='Courier',
                         object_id=pk, object_name=courier.full_name)
        return success_response(None, message='Courier deleted')

    serializer = CourierSerializer(courier, data=request.data, partial=request.method == 'PATCH',
                                   context={'organization': request.user.organization})
    if not serializer.is_valid():
        logger.warning(f"Courier update validation failed: {serializer.errors}")
        return validation_error_response(serializer.errors)
    serializer.save()
    logger.info(f"Courier {pk} updated successfully")
    return success_response(serializer.data)


# Assignment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasOrganization])
def assignment_list_create(request):
    """List assignments or assign a courier to an order"""
    try:
        if request.method == 'GET':
            assignment_filter = OrderAssignmentFilter(request.query_params, queryset=_assignment_queryset(request))
            if not assignment_filter.is_valid():
                return validation_error_response(assignment_filter.errors)
            return success_response(paginate(request, assignment_filter.qs, OrderAssignmentSerializer))

        serializer = AssignmentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data

        try:
            order = Order.objects.get(pk=data['order'], organization_id=request.user.organization_id)
        except Order.DoesNotExist:
            raise ValidationFailed('Order does not exist in your organization', code='INVALID_ORDER')

        logger.info(f"User {request.user.username} assigning courier {data['courier']} to order {order.pk}")
        assignment = assign_courier(order, data['courier'], user=request.user, notes=data['notes'])
        create_audit_log(request=request, action='assignment_create', model_name='OrderAssignment',
                         object_id=assignment.id, object_name=str(assignment),
                         changes={'order': order.pk, 'courier': assignment.courier_id})
        return success_response(OrderAssignmentSerializer(assignment).data, status_code=status.HTTP_201_CREATED)
    except HANDLED_EXCEPTIONS:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in assignment_list_create: {str(e)}", exc_info=True)
        return error_response('An unexpected error occurred', 'INTERNAL_SERVER_ERROR',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)


def _assignment_response(request, assignment):
    if request.method == 'GET':
        return success_response(OrderAssignmentSerializer(assignment).data)

    if request.method == 'DELETE':
        logger.info(f"User {request.user.username} deleting assignment {assignment.pk}")
        delete_assignment(assignment, user=request.user)
        return success_response(None, message='Assignment deleted')

    previous = {'status': assignment.status, 'courier': assignment.courier_id}
    assignment = update_assignment(assignment, request.data, user=request.user)
    create_audit_log(request=request, action='assignment_update', model_name='OrderAssignment',
                     object_id=assignment.id, object_name=str(assignment),
                     changes={'old': previous, 'new': {'status': assignment.status, 'courier': assignment.courier_id}})
    return success_response(OrderAssignmentSerializer(assignment).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def assignment_detail(request, pk):
    """Retrieve, update or delete an assignment"""
    try:
        assignment = _assignment_queryset(request).get(pk=pk)
    except OrderAssignment.DoesNotExist:
        raise NotFound('Assignment not found', code='ASSIGNMENT_NOT_FOUND')
    return _assignment_response(request, assignment)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasOrganization])
def assignment_by_order(request, order_id):
    """Same as assignment_detail, addressed by order id"""
    try:
        assignment = _assignment_queryset(request).get(order_id=order_id)
    except OrderAssignment.DoesNotExist:
        raise NotFound('Order has no assignment', code='ASSIGNMENT_NOT_FOUND')
    return _assignment_response(request, assignment)
