from django.db import models
from assisthub.core.models import User


class LinkedType(models.TextChoices):
    PROJECT = 'project', 'Progetto'
    CLIENT = 'client', 'Cliente'
    TEAM = 'team', 'Team'
    USER = 'user', 'Utente'


class FileAttachment(models.Model):
    """
    A stored file linked to one entity. The same physical file linked to
    several entities is several rows sharing ``storage_path``.
    """
    name = models.CharField(max_length=255)
    file = models.FileField(upload_to='attachments/%Y/%m/', max_length=500)
    storage_path = models.CharField(max_length=500, db_index=True)
    content_type = models.CharField(max_length=100, blank=True)
    size = models.PositiveBigIntegerField(default=0)
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='uploaded_files')
    uploaded_at = models.DateTimeField(auto_now_add=True)
    linked_type = models.CharField(max_length=10, choices=LinkedType.choices)
    linked_id = models.PositiveBigIntegerField()

    def __str__(self):
        return f"{self.name} -> {self.linked_type}:{self.linked_id}"

    class Meta:
        db_table = 'file_attachments'
        ordering = ['-uploaded_at']
        indexes = [
            models.Index(fields=['linked_type', 'linked_id'], name='files_link_idx'),
        ]
