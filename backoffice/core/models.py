from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Back-office user mirrored from a Firebase account"""
    ROLE_ADMIN = 'admin'
    ROLE_SERVICE_CLIENT = 'service_client'
    ROLE_DELIVERY = 'delivery'
    ROLE_NONE = 'none'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_SERVICE_CLIENT, 'Service Client'),
        (ROLE_DELIVERY, 'Delivery'),
        (ROLE_NONE, 'N/A'),
    ]

    firebase_uid = models.CharField(max_length=128, unique=True, null=True, blank=True)
    email_verified = models.BooleanField(default=False)
    display_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    photo_url = models.URLField(max_length=500, blank=True, null=True)
    provider_id = models.CharField(max_length=50, blank=True, default='firebase')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_NONE)
    organization = models.ForeignKey(
        'organizations.Organization', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='users'
    )
    is_active = models.BooleanField(default=True)
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.display_name or self.email or self.username

    @property
    def is_org_admin(self):
        return bool(self.organization_id) and self.role == self.ROLE_ADMIN


class Setting(models.Model):
    """Organization configuration (key/value)"""
    organization = models.ForeignKey(
        'organizations.Organization', on_delete=models.CASCADE, related_name='settings'
    )
    key = models.CharField(max_length=100)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'
        ordering = ['key']
        constraints = [
            models.UniqueConstraint(fields=['organization', 'key'], name='unique_setting_key_per_organization'),
        ]


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_adjust', 'Stock Adjustment'),
        ('status_change', 'Status Change'),
        ('order_create', 'Order Created'),
        ('order_update', 'Order Updated'),
        ('order_cancel', 'Order Cancelled'),
        ('assignment_create', 'Order Assigned'),
        ('assignment_update', 'Assignment Updated'),
        ('invitation_create', 'Invitation Sent'),
        ('invitation_accept', 'Invitation Accepted'),
        ('member_update', 'Member Updated'),
        ('member_remove', 'Member Removed'),
    ]

    organization = models.ForeignKey(
        'organizations.Organization', on_delete=models.CASCADE,
        null=True, blank=True, related_name='audit_logs'
    )
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
        ]
