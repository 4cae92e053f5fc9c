from django.db import models
from assisthub.core.models import User


class TagCategory(models.TextChoices):
    USER = 'USER', 'User'
    TEAM = 'TEAM', 'Team'
    CLIENT = 'CLIENT', 'Client'
    PROJECT = 'PROJECT', 'Project'


class Tag(models.Model):
    """Tag registry entry. ``usage_count`` mirrors how many entities carry ``name``"""
    name = models.CharField(max_length=50)
    category = models.CharField(max_length=10, choices=TagCategory.choices)
    usage_count = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tags')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} [{self.category}]"

    class Meta:
        db_table = 'tags'
        ordering = ['category', 'name']
        constraints = [
            models.UniqueConstraint(fields=['name', 'category'], name='unique_tag_name_per_category'),
        ]
