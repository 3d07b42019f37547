from django.conf import settings
from django.db import models


class Courier(models.Model):
    """Delivery person; may be linked to a back-office user with the delivery role"""
    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='couriers')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='courier_profiles'
    )
    first_name = models.CharField(max_length=255)
    last_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True, null=True)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'couriers'
        ordering = ['first_name', 'last_name']

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class OrderAssignment(models.Model):
    """Link between an order and the courier delivering it"""
    STATUS_ASSIGNED = 'assigned'
    STATUS_EN_ROUTE = 'en_route'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_ASSIGNED, 'Assigned'),
        (STATUS_EN_ROUTE, 'En Route'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    ACTIVE_STATUSES = (STATUS_ASSIGNED, STATUS_EN_ROUTE)

    # Order status that mirrors each assignment status
    ORDER_STATUS_MAP = {
        STATUS_ASSIGNED: 'in_process',
        STATUS_EN_ROUTE: 'en_route',
        STATUS_DELIVERED: 'delivered',
        STATUS_CANCELLED: 'pending',
    }

    order = models.OneToOneField('orders.Order', on_delete=models.CASCADE, related_name='assignment')
    courier = models.ForeignKey(Courier, on_delete=models.PROTECT, related_name='assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ASSIGNED)
    notes = models.TextField(blank=True)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assignments_made'
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order_assignments'
        ordering = ['-assigned_at']

    def __str__(self):
        return f"Order #{self.order_id} → {self.courier}"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES
