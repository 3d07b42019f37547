"""Courier assignment and the order/courier state kept in step with it"""
import logging

from django.db import transaction

from backoffice.core.exceptions import Conflict, ValidationFailed
from .models import Courier, OrderAssignment

logger = logging.getLogger('backoffice.delivery')

ASSIGNMENT_STATUS_VALUES = [value for value, _ in OrderAssignment.STATUS_CHOICES]


def get_courier(organization, courier_id):
    if courier_id in (None, ''):
        raise ValidationFailed('Courier is required', code='REQUIRED_FIELD')
    try:
        return Courier.objects.get(pk=int(courier_id), organization=organization)
    except (Courier.DoesNotExist, TypeError, ValueError):
        raise ValidationFailed('Courier does not exist in your organization', code='INVALID_COURIER')


def refresh_availability(courier):
    """A courier is available while none of their assignments is active"""
    busy = courier.assignments.filter(status__in=OrderAssignment.ACTIVE_STATUSES).exists()
    if courier.is_available == busy:
        courier.is_available = not busy
        courier.save(update_fields=['is_available', 'updated_at'])


def _sync_order(assignment, user=None):
    from backoffice.orders.services import change_status
    change_status(
        assignment.order, OrderAssignment.ORDER_STATUS_MAP[assignment.status],
        user=user, sync_assignment=False
    )


def assign_courier(order, courier_id, user=None, notes=''):
    """
    Assign a courier to an order. A cancelled assignment is reused; any
    other existing assignment is a conflict.
    """
    from backoffice.notifications.services import notify_assignment

    if order.is_terminal:
        raise ValidationFailed(f'Cannot assign a {order.status} order', code='INVALID_ORDER_STATUS')
    courier = get_courier(order.organization, courier_id)

    with transaction.atomic():
        assignment = OrderAssignment.objects.select_for_update().filter(order=order).first()
        if assignment is not None and assignment.status != OrderAssignment.STATUS_CANCELLED:
            raise Conflict('Order already has an assignment', code='ASSIGNMENT_EXISTS')

        previous_courier = None
        if assignment is None:
            assignment = OrderAssignment.objects.create(
                order=order, courier=courier, notes=notes or '', assigned_by=user
            )
        else:
            previous_courier = assignment.courier
            assignment.courier = courier
            assignment.status = OrderAssignment.STATUS_ASSIGNED
            assignment.notes = notes or assignment.notes
            assignment.assigned_by = user
            assignment.save()

        order.assignment = assignment
        _sync_order(assignment, user=user)
        refresh_availability(courier)
        if previous_courier is not None and previous_courier.pk != courier.pk:
            refresh_availability(previous_courier)
        notify_assignment(assignment, user=user)

    logger.info(f"Order {order.pk} assigned to courier {courier.pk}")
    return assignment


def update_assignment(assignment, data, user=None):
    """Change courier, status or notes; the order status follows the assignment status"""
    from backoffice.notifications.services import notify_assignment

    with transaction.atomic():
        assignment = OrderAssignment.objects.select_for_update().select_related('order', 'courier') \
            .get(pk=assignment.pk)
        previous_courier = assignment.courier
        new_status = data.get('status')

        if not assignment.is_active and (new_status not in (None, '', assignment.status) or data.get('courier')):
            raise ValidationFailed(
                f'Assignment is {assignment.status} and cannot be changed', code='INVALID_STATUS_TRANSITION'
            )

        if data.get('courier') not in (None, ''):
            assignment.courier = get_courier(assignment.order.organization, data.get('courier'))
        if 'notes' in data:
            assignment.notes = data.get('notes') or ''

        status_changed = False
        if new_status not in (None, '') and new_status != assignment.status:
            if new_status not in ASSIGNMENT_STATUS_VALUES:
                raise ValidationFailed(f'Invalid assignment status: {new_status}', code='INVALID_STATUS')
            assignment.status = new_status
            status_changed = True

        assignment.save()
        if status_changed:
            _sync_order(assignment, user=user)

        refresh_availability(assignment.courier)
        if previous_courier.pk != assignment.courier_id:
            refresh_availability(previous_courier)
            notify_assignment(assignment, user=user)

    logger.info(f"Assignment {assignment.pk} updated: status={assignment.status}, courier={assignment.courier_id}")
    return assignment


def close_assignment_for_order(order, order_status):
    """Close the active assignment of an order that became delivered or cancelled"""
    assignment = OrderAssignment.objects.filter(order=order).select_related('courier').first()
    if assignment is None or not assignment.is_active:
        return None
    assignment.status = (
        OrderAssignment.STATUS_DELIVERED if order_status == 'delivered' else OrderAssignment.STATUS_CANCELLED
    )
    assignment.save(update_fields=['status', 'updated_at'])
    refresh_availability(assignment.courier)
    logger.info(f"Assignment {assignment.pk} closed as {assignment.status} with order {order.pk}")
    return assignment


def delete_assignment(assignment, user=None):
    """Remove an assignment; an order still in progress goes back to pending"""
    with transaction.atomic():
        courier = assignment.courier
        order = assignment.order
        was_active = assignment.is_active
        assignment.delete()
        if was_active and not order.is_terminal:
            from backoffice.orders.services import change_status
            change_status(order, 'pending', user=user, sync_assignment=False)
        refresh_availability(courier)
    logger.info(f"Assignment for order {order.pk} deleted")
