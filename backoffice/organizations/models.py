import uuid
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


TAX_REGIME_CHOICES = [
    ('simplified', 'Simplified regime'),
    ('common', 'Common regime'),
]


class Organization(models.Model):
    """Tenant owning every back-office record"""
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    nit = models.CharField(max_length=50, blank=True, help_text="Tax identification number")
    phone_service = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)
    tax_regime = models.CharField(max_length=20, choices=TAX_REGIME_CHOICES, default='simplified')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'organizations'
        ordering = ['name']

    def __str__(self):
        return self.name

    @staticmethod
    def build_slug(name):
        return slugify(name)[:255]


def default_invitation_expiry():
    return timezone.now() + timedelta(days=settings.INVITATION_EXPIRY_DAYS)


class InvitationQuerySet(models.QuerySet):
    def pending_for_email(self, email):
        return self.filter(
            invited_email__iexact=email or '', status='pending', expires_at__gt=timezone.now()
        ).select_related('organization', 'invited_by')


class OrganizationInvitation(models.Model):
    """Invitation for an email address to join an organization"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
    ]
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('service_client', 'Service Client'),
        ('delivery', 'Delivery'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='invitations')
    invited_email = models.EmailField()
    invited_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_invitations')
    token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    assigned_role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='service_client')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    message = models.TextField(blank=True)
    expires_at = models.DateTimeField(default=default_invitation_expiry)
    accepted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='accepted_invitations'
    )
    accepted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InvitationQuerySet.as_manager()

    class Meta:
        db_table = 'organization_invitations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['invited_email', 'status'], name='invitation_email_status_idx'),
        ]

    def __str__(self):
        return f"{self.invited_email} → {self.organization}"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()


class OrganizationRequest(models.Model):
    """A user's request to have a new organization created"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('under_review', 'Under Review'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('cancelled', 'Cancelled'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    OPEN_STATUSES = ['pending', 'under_review']

    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='organization_requests')
    organization_name = models.CharField(max_length=255)
    organization_nit = models.CharField(max_length=50, blank=True)
    organization_phone = models.CharField(max_length=20, blank=True)
    organization_address = models.CharField(max_length=255, blank=True)
    organization_tax_regime = models.CharField(max_length=20, choices=TAX_REGIME_CHOICES, default='simplified')
    business_justification = models.TextField()
    contact_name = models.CharField(max_length=255, blank=True)
    contact_position = models.CharField(max_length=100, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_requests'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_comments = models.TextField(blank=True)
    created_organization = models.ForeignKey(
        Organization, on_delete=models.SET_NULL, null=True, blank=True, related_name='source_requests'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'organization_requests'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.organization_name} ({self.get_status_display()})"
