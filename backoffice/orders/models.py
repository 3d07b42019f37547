from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Order(models.Model):
    """Client order delivered to an address"""
    STATUS_PENDING = 'pending'
    STATUS_IN_PROCESS = 'in_process'
    STATUS_EN_ROUTE = 'en_route'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROCESS, 'In Process'),
        (STATUS_EN_ROUTE, 'En Route'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    TERMINAL_STATUSES = (STATUS_DELIVERED, STATUS_CANCELLED)

    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='orders')
    client = models.ForeignKey('parties.Client', on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    delivery_address = models.CharField(max_length=255)
    delivery_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'status'], name='order_org_status_idx'),
            models.Index(fields=['organization', '-created_at'], name='order_org_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.pk}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def get_subtotal(self):
        """Sum of the detail rows"""
        return sum((detail.get_line_total() for detail in self.details.all()), Decimal('0.00'))


class OrderDetail(models.Model):
    """Order line"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='details')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, related_name='order_details')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = 'order_details'
        ordering = ['id']

    def __str__(self):
        return f"{self.product} x {self.quantity}"

    def get_line_total(self):
        return Decimal(self.quantity) * self.unit_price

    def save(self, *args, **kwargs):
        self.subtotal = self.get_line_total()
        super().save(*args, **kwargs)
