"""
Notification generators.

Each generator checks the organization's preference settings first:
    notifications.new_orders, notifications.status_changes, notifications.low_stock
"""
import logging

from backoffice.core.utils import setting_enabled
from .models import Notification

logger = logging.getLogger('backoffice.notifications')

SETTING_NEW_ORDERS = 'notifications.new_orders'
SETTING_STATUS_CHANGES = 'notifications.status_changes'
SETTING_LOW_STOCK = 'notifications.low_stock'
SETTING_WEEKLY_REPORTS = 'notifications.weekly_reports'

NOTIFICATION_SETTINGS = {
    SETTING_NEW_ORDERS: 'Notify when a new order is created',
    SETTING_STATUS_CHANGES: 'Notify when an order changes status',
    SETTING_LOW_STOCK: 'Notify when a product runs low or out of stock',
    SETTING_WEEKLY_REPORTS: 'Send weekly report summaries',
}


def notify(organization, category, notification_type, title, message, related=None, user=None, setting_key=None):
    """Create a notification unless the organization turned that kind off"""
    if setting_key and not setting_enabled(organization, setting_key):
        logger.debug(f"Notification '{notification_type}' skipped for organization {organization.pk} ({setting_key} off)")
        return None
    notification = Notification.objects.create(
        organization=organization,
        category=category,
        type=notification_type,
        title=title,
        message=message,
        related_model=related.__class__.__name__ if related is not None else '',
        related_id=str(related.pk) if related is not None else '',
        created_by=user if user is not None and user.is_authenticated else None,
    )
    logger.debug(f"Notification {notification.pk} ({notification_type}) created for organization {organization.pk}")
    return notification


def notify_new_order(order, user=None):
    return notify(
        order.organization, Notification.CATEGORY_ORDERS, 'new_order',
        f'New order #{order.pk}',
        f'{order.client.full_name} ordered for {order.total}. Deliver to {order.delivery_address}.',
        related=order, user=user, setting_key=SETTING_NEW_ORDERS,
    )


def notify_order_status(order, previous_status, user=None):
    notification_type = order.status if order.status in ('delivered', 'cancelled') else 'status_change'
    return notify(
        order.organization, Notification.CATEGORY_ORDERS, notification_type,
        f'Order #{order.pk} {order.get_status_display().lower()}',
        f'Order #{order.pk} for {order.client.full_name} moved from {previous_status} to {order.status}.',
        related=order, user=user, setting_key=SETTING_STATUS_CHANGES,
    )


def notify_assignment(assignment, user=None):
    return notify(
        assignment.order.organization, Notification.CATEGORY_ORDERS, 'courier',
        f'Order #{assignment.order_id} assigned',
        f'{assignment.courier.full_name} will deliver order #{assignment.order_id}.',
        related=assignment.order, user=user, setting_key=SETTING_STATUS_CHANGES,
    )


def notify_stock_level(product, previous_stock):
    """Emit out_of_stock / low_stock when a stock change crosses zero or the threshold"""
    if previous_stock > 0 and product.stock == 0:
        return notify(
            product.organization, Notification.CATEGORY_STOCK, 'out_of_stock',
            f'{product.name} is out of stock',
            f'{product.name} has no units left.',
            related=product, setting_key=SETTING_LOW_STOCK,
        )
    if 0 < product.stock <= product.low_stock_threshold < previous_stock:
        return notify(
            product.organization, Notification.CATEGORY_STOCK, 'low_stock',
            f'{product.name} is running low',
            f'{product.name} has {product.stock} units left (threshold {product.low_stock_threshold}).',
            related=product, setting_key=SETTING_LOW_STOCK,
        )
    return None
