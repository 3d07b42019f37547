from django.db import models


class Client(models.Model):
    """Customer receiving deliveries"""
    organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE, related_name='clients')
    first_name = models.CharField(max_length=255)
    last_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True, null=True)
    address = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    class Meta:
        db_table = 'clients'
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['organization', 'phone'], name='client_org_phone_idx'),
        ]
