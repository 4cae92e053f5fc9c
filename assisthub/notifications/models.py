from django.db import models
from assisthub.core.models import User


class Notification(models.Model):
    """In-app notifications. A notification without a target user is visible to everyone."""
    title = models.CharField(max_length=200)
    message = models.TextField()
    read = models.BooleanField(default=False)
    link = models.CharField(max_length=500, blank=True)
    target_user = models.ForeignKey(User, on_delete=models.CASCADE, null=True, blank=True, related_name='notifications')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['read'], name='notifications_read_idx'),
        ]
