from django.conf import settings
from django.db import models


class Notification(models.Model):
    """Inbox entry shown to every member of an organization"""
    CATEGORY_ORDERS = 'orders'
    CATEGORY_STOCK = 'stock'
    CATEGORY_MESSAGES = 'messages'
    CATEGORY_CHOICES = [
        (CATEGORY_ORDERS, 'Orders'),
        (CATEGORY_STOCK, 'Stock'),
        (CATEGORY_MESSAGES, 'Messages'),
    ]
    TYPE_CHOICES = [
        ('new_order', 'New Order'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
        ('status_change', 'Status Change'),
        ('low_stock', 'Low Stock'),
        ('out_of_stock', 'Out of Stock'),
        ('client', 'Client'),
        ('courier', 'Courier'),
        ('message', 'Message'),
    ]

    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='notifications')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    related_model = models.CharField(max_length=50, blank=True)
    related_id = models.CharField(max_length=50, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications_sent'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'is_read'], name='notification_org_read_idx'),
            models.Index(fields=['organization', 'category'], name='notification_org_cat_idx'),
        ]

    def __str__(self):
        return self.title
