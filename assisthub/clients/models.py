from django.db import models
from assisthub.core.models import User


class Client(models.Model):
    """Customer companies. Clients created by technicians wait for an administrator's approval."""
    company_name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True)
    address = models.CharField(max_length=300, blank=True)
    geolocation_link = models.URLField(max_length=500, blank=True)
    phone_fixed = models.CharField(max_length=20, blank=True)
    phone_mobile = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True, max_length=2000)
    tags = models.JSONField(default=list, blank=True)
    awaiting_admin_approval = models.BooleanField(default=False)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_clients')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_clients')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.company_name

    class Meta:
        db_table = 'clients'
        ordering = ['company_name']
        indexes = [
            models.Index(fields=['awaiting_admin_approval'], name='clients_awaiting_idx'),
        ]
