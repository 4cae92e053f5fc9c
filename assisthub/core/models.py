from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    TECNICO = 'TECNICO', 'Tecnico'
    SUPERVISOR = 'SUPERVISOR', 'Supervisor'
    AMMINISTRATORE = 'AMMINISTRATORE', 'Amministratore'


class User(AbstractUser):
    """Extended user model with role, contact details and tags"""
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.TECNICO)
    phone = models.CharField(max_length=20, blank=True, null=True)
    avatar = models.URLField(max_length=500, blank=True)
    notes = models.TextField(blank=True, max_length=1000)
    # Tag names (uppercase); maintained through assisthub.tags.services only
    tags = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    updated_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def effective_role(self):
        """Superusers always act as administrators"""
        if self.is_superuser:
            return Role.AMMINISTRATORE
        return self.role

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username

    class Meta:
        db_table = 'users'
        ordering = ['last_name', 'first_name']


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('tag_associations', 'Tag Associations Updated'),
        ('client_approve', 'Client Approved'),
        ('file_upload', 'File Uploaded'),
        ('file_delete', 'File Deleted'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., tag name, company name)")
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
