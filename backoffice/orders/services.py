"""
Order composition and validation.

The validation chain runs in a fixed order and stops at the first failure:
required fields, client tenancy, delivery address, line shape, product
tenancy, stock and finally the submitted total against the recomputed one.
"""
import logging
from collections import OrderedDict
from datetime import datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from backoffice.catalog.models import Product
from backoffice.core.exceptions import ValidationFailed
from backoffice.parties.models import Client
from .models import Order, OrderDetail

logger = logging.getLogger('backoffice.orders')

CENT = Decimal('0.01')
TOTAL_TOLERANCE = Decimal(settings.ORDER_TOTAL_TOLERANCE)
STATUS_VALUES = [value for value, _ in Order.STATUS_CHOICES]


class OrderValidationError(ValidationFailed):
    default_detail = 'Invalid order data'
    default_code = 'INVALID_DATA'


def quantize(amount):
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_decimal(value, code, message, details=None):
    if value is None or value == '' or isinstance(value, bool):
        raise OrderValidationError(message, code=code, details=details)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise OrderValidationError(message, code=code, details=details)
    if not amount.is_finite():
        raise OrderValidationError(message, code=code, details=details)
    return amount


def parse_quantity(value, index):
    message = f'Line {index + 1}: quantity must be a whole number greater than zero'
    amount = parse_decimal(value, 'INVALID_QUANTITY', message)
    if amount <= 0 or amount != amount.to_integral_value():
        raise OrderValidationError(message, code='INVALID_QUANTITY')
    return int(amount)


def parse_delivery_date(value):
    if value in (None, ''):
        return None
    try:
        parsed = parse_datetime(str(value))
        if parsed is None:
            day = parse_date(str(value))
            if day is not None:
                parsed = datetime.combine(day, time.min)
    except ValueError:
        parsed = None
    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    if parsed is None:
        raise OrderValidationError('Delivery date must be an ISO 8601 date or datetime', code='INVALID_DATE')
    return parsed


def validate_client(organization, client_id):
    if client_id in (None, ''):
        raise OrderValidationError('Client is required', code='REQUIRED_FIELD')
    try:
        return Client.objects.get(pk=int(client_id), organization=organization)
    except (Client.DoesNotExist, ValueError, TypeError):
        raise OrderValidationError('Client does not exist in your organization', code='INVALID_CLIENT')


def validate_address(address):
    address = (address or '').strip()
    if len(address) < settings.ORDER_MIN_ADDRESS_LENGTH:
        raise OrderValidationError(
            f'Delivery address must have at least {settings.ORDER_MIN_ADDRESS_LENGTH} characters',
            code='INVALID_ADDRESS'
        )
    return address


def parse_lines(details):
    """Check the shape of every line; prices may be omitted (product price is used)"""
    lines = []
    for index, raw in enumerate(details):
        if not isinstance(raw, dict):
            raise OrderValidationError(f'Line {index + 1}: invalid line format', code='INVALID_DATA')
        product_id = raw.get('product', raw.get('product_id'))
        if product_id in (None, ''):
            raise OrderValidationError(f'Line {index + 1}: product is required', code='REQUIRED_PRODUCT')
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise OrderValidationError(f'Line {index + 1}: invalid product', code='INVALID_PRODUCT')
        quantity = parse_quantity(raw.get('quantity'), index)
        unit_price = None
        if raw.get('unit_price') not in (None, ''):
            unit_price = parse_decimal(
                raw.get('unit_price'), 'INVALID_PRICE', f'Line {index + 1}: unit price must be greater than zero'
            )
            if unit_price <= 0:
                raise OrderValidationError(f'Line {index + 1}: unit price must be greater than zero', code='INVALID_PRICE')
            unit_price = quantize(unit_price)
        lines.append({'product_id': product_id, 'quantity': quantity, 'unit_price': unit_price})
    return lines


def load_products(organization, lines, lock=False):
    """Resolve line products inside the organization, locking rows when asked"""
    product_ids = {line['product_id'] for line in lines}
    queryset = Product.objects.filter(organization=organization, pk__in=product_ids)
    if lock:
        queryset = queryset.select_for_update()
    products = {product.pk: product for product in queryset}
    missing = sorted(product_ids - set(products))
    if missing:
        raise OrderValidationError(
            'Some products do not exist in your organization', code='INVALID_PRODUCT',
            details={'products': missing}
        )
    for line in lines:
        line['product'] = products[line['product_id']]
        if line['unit_price'] is None:
            line['unit_price'] = line['product'].price
        line['subtotal'] = quantize(Decimal(line['quantity']) * line['unit_price'])
    return products


def build_stock_report(lines, reserved=None):
    """Aggregate requested quantities per product and compare them with available stock"""
    reserved = reserved or {}
    requested = OrderedDict()
    for line in lines:
        requested[line['product_id']] = requested.get(line['product_id'], 0) + line['quantity']

    report = []
    for product_id, quantity in requested.items():
        product = next(line['product'] for line in lines if line['product_id'] == product_id)
        available = product.stock + reserved.get(product_id, 0)
        report.append({
            'product': product_id,
            'name': product.name,
            'requested': quantity,
            'available': available,
            'sufficient': quantity <= available,
        })
    return report


def check_stock(report):
    for row in report:
        if not row['sufficient']:
            raise OrderValidationError(
                f"{row['name']}: Insufficient stock (available: {row['available']}, requested: {row['requested']})",
                code='INSUFFICIENT_STOCK',
                details={'lines': report}
            )


def compute_total(lines):
    return quantize(sum((Decimal(line['quantity']) * line['unit_price'] for line in lines), Decimal('0')))


def check_total(submitted, computed):
    details = {'submitted': str(submitted), 'computed': str(computed)}
    amount = parse_decimal(submitted, 'INVALID_TOTAL', 'Total must be a valid amount', details=details)
    if amount <= 0:
        raise OrderValidationError('Total must be greater than zero', code='INVALID_TOTAL', details=details)
    if abs(amount - computed) > TOTAL_TOLERANCE:
        details['submitted'] = str(quantize(amount))
        raise OrderValidationError(
            f'Total {quantize(amount)} does not match the sum of the lines ({computed})',
            code='INVALID_TOTAL',
            details=details
        )
    return computed


def ensure_payload(data):
    if not isinstance(data, dict):
        raise OrderValidationError('Order data must be a JSON object', code='INVALID_DATA')
    return data


def reserved_quantities(order):
    """Units an existing order currently holds, per product"""
    if order is None or order.is_terminal:
        return {}
    reserved = {}
    for detail in order.details.all():
        reserved[detail.product_id] = reserved.get(detail.product_id, 0) + detail.quantity
    return reserved


def validate_order_payload(organization, data, instance=None, lock=False, require_total=True):
    """
    Run the validation chain and return the normalised order.

    `instance` is the order being edited: missing client/address fall back to
    its values and the units it already holds count as available stock.
    """
    details = ensure_payload(data).get('details')

    # 1. required fields
    if instance is None and data.get('client') in (None, ''):
        raise OrderValidationError('Client is required', code='REQUIRED_FIELD')
    if not isinstance(details, list) or not details:
        raise OrderValidationError('Order must contain at least one product', code='NO_PRODUCTS')
    if require_total and instance is None and data.get('total') in (None, ''):
        raise OrderValidationError('Total is required', code='REQUIRED_FIELD')

    # 2. client tenancy
    if data.get('client') not in (None, ''):
        client = validate_client(organization, data.get('client'))
    else:
        client = instance.client

    # 3. delivery address
    if 'delivery_address' in data:
        address = validate_address(data.get('delivery_address'))
    elif instance is not None:
        address = instance.delivery_address
    else:
        address = validate_address(client.address)

    # 4-5. line shape and product tenancy
    lines = parse_lines(details)
    load_products(organization, lines, lock=lock)

    # 6. stock
    stock_report = build_stock_report(lines, reserved=reserved_quantities(instance))
    check_stock(stock_report)

    # 7. total
    computed = compute_total(lines)
    if data.get('total') not in (None, ''):
        check_total(data.get('total'), computed)

    return {
        'client': client,
        'delivery_address': address,
        'lines': lines,
        'computed_total': computed,
        'stock': stock_report,
    }


def preview_order(organization, data):
    """Dry run of the chain for the order form; never writes"""
    result = {'valid': True, 'error': None, 'computed_total': None, 'lines': []}
    try:
        validated = validate_order_payload(organization, data, require_total=False)
        result['computed_total'] = str(validated['computed_total'])
        result['lines'] = validated['stock']
    except OrderValidationError as e:
        result['valid'] = False
        result['error'] = {'code': e.code, 'message': e.message}
        if e.code == 'INSUFFICIENT_STOCK':
            result['lines'] = e.details['lines']
        elif e.code == 'INVALID_TOTAL' and e.details:
            result['computed_total'] = e.details['computed']
    return result


def reserve_stock(lines):
    for line in lines:
        Product.objects.filter(pk=line['product_id']).update(stock=F('stock') - line['quantity'])


def release_stock(details):
    """Return the units held by detail rows to their products"""
    for detail in details:
        Product.objects.filter(pk=detail.product_id).update(stock=F('stock') + detail.quantity)


def _write_lines(order, lines):
    OrderDetail.objects.bulk_create([
        OrderDetail(
            order=order,
            product=line['product'],
            quantity=line['quantity'],
            unit_price=line['unit_price'],
            subtotal=line['subtotal'],
        )
        for line in lines
    ])


def _notify_stock(lines):
    """Stock notifications against the levels read when the lines were validated"""
    from backoffice.notifications.services import notify_stock_level
    previous = {line['product_id']: line['product'].stock for line in lines}
    for product_id, previous_stock in previous.items():
        notify_stock_level(Product.objects.get(pk=product_id), previous_stock)


def create_order(organization, user, data):
    """Validate, persist the order and its lines, and take the units out of stock"""
    from backoffice.notifications.services import notify_new_order

    with transaction.atomic():
        validated = validate_order_payload(organization, data, lock=True)
        order = Order.objects.create(
            organization=organization,
            client=validated['client'],
            delivery_address=validated['delivery_address'],
            delivery_date=parse_delivery_date(data.get('delivery_date')),
            notes=(data.get('notes') or '').strip(),
            total=validated['computed_total'],
            status=Order.STATUS_PENDING,
            created_by=user,
        )
        _write_lines(order, validated['lines'])
        reserve_stock(validated['lines'])

        courier_id = data.get('courier')
        if courier_id not in (None, ''):
            from backoffice.delivery.services import assign_courier
            assign_courier(order, courier_id, user=user)

        notify_new_order(order, user=user)
        _notify_stock(validated['lines'])

    logger.info(f"Order {order.pk} created for client {order.client_id} with {len(validated['lines'])} lines, total {order.total}")
    return order


def change_status(order, new_status, user=None, sync_assignment=True):
    """
    Move an order to a new status.

    delivered and cancelled are terminal; cancelling returns the stock.
    Returns True when the status changed.
    """
    from backoffice.notifications.services import notify_order_status

    if new_status not in STATUS_VALUES:
        raise OrderValidationError(f'Invalid status: {new_status}', code='INVALID_STATUS')
    if new_status == order.status:
        return False
    if order.is_terminal:
        raise OrderValidationError(
            f'Order is {order.status} and cannot change status', code='INVALID_STATUS_TRANSITION'
        )

    previous = order.status
    if new_status == Order.STATUS_CANCELLED:
        release_stock(order.details.all())
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])

    if sync_assignment and new_status in Order.TERMINAL_STATUSES:
        from backoffice.delivery.services import close_assignment_for_order
        close_assignment_for_order(order, new_status)

    notify_order_status(order, previous, user=user)
    logger.info(f"Order {order.pk} status {previous} -> {new_status}")
    return True


def update_order(order, data, user=None):
    """
    Apply an edit. With `details` the lines are replaced and the total
    recomputed; without them a submitted total must match the current lines.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().select_related('client').get(pk=order.pk)
        organization = order.organization
        new_status = ensure_payload(data).get('status')

        if order.is_terminal:
            if 'details' in data:
                raise OrderValidationError(f'Order is {order.status} and cannot be edited', code='ORDER_LOCKED')
            if new_status not in (None, '', order.status):
                raise OrderValidationError(
                    f'Order is {order.status} and cannot change status', code='INVALID_STATUS_TRANSITION'
                )

        if 'details' in data:
            validated = validate_order_payload(organization, data, instance=order, lock=True)
            release_stock(order.details.all())
            order.details.all().delete()
            _write_lines(order, validated['lines'])
            reserve_stock(validated['lines'])
            order.client = validated['client']
            order.delivery_address = validated['delivery_address']
            order.total = validated['computed_total']
        else:
            if data.get('client') not in (None, ''):
                order.client = validate_client(organization, data.get('client'))
            if 'delivery_address' in data:
                order.delivery_address = validate_address(data.get('delivery_address'))
            if data.get('total') not in (None, ''):
                check_total(data.get('total'), quantize(order.get_subtotal()))

        if 'delivery_date' in data:
            order.delivery_date = parse_delivery_date(data.get('delivery_date'))
        if 'notes' in data:
            order.notes = (data.get('notes') or '').strip()
        order.save()

        if new_status not in (None, ''):
            change_status(order, new_status, user=user)

        if 'details' in data:
            _notify_stock(validated['lines'])

    logger.info(f"Order {order.pk} updated")
    return order


def delete_order(order):
    """Delete an order, returning held units unless it was delivered or cancelled"""
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        if not order.is_terminal:
            release_stock(order.details.all())
            from backoffice.delivery.services import close_assignment_for_order
            close_assignment_for_order(order, Order.STATUS_CANCELLED)
        order_id = order.pk
        order.delete()
    logger.info(f"Order {order_id} deleted")
