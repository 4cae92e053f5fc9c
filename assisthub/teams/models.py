from django.db import models
from assisthub.core.models import User


class Team(models.Model):
    """Teams of users, managed by supervisors and administrators"""
    name = models.CharField(max_length=100)
    members = models.ManyToManyField(User, blank=True, related_name='teams')
    notes = models.TextField(blank=True, max_length=500)
    tags = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_teams')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'teams'
        ordering = ['name']
