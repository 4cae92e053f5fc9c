from django.db import models
from assisthub.core.models import User
from assisthub.clients.models import Client


class ProjectStatus(models.TextChoices):
    NON_INIZIATO = 'Non Iniziato', 'Non Iniziato'
    IN_CORSO = 'In Corso', 'In Corso'
    COMPLETATO = 'Completato', 'Completato'
    IN_SOSPESO = 'In Sospeso', 'In Sospeso'
    ANNULLATO = 'Annullato', 'Annullato'


class ProjectPriority(models.TextChoices):
    BASSA = 'Bassa', 'Bassa'
    MEDIA = 'Media', 'Media'
    ALTA = 'Alta', 'Alta'


class Project(models.Model):
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    clients = models.ManyToManyField(Client, related_name='projects')
    team_members = models.ManyToManyField(User, blank=True, related_name='projects')
    status = models.CharField(max_length=20, choices=ProjectStatus.choices, default=ProjectStatus.NON_INIZIATO)
    priority = models.CharField(max_length=10, choices=ProjectPriority.choices, default=ProjectPriority.MEDIA)
    due_date = models.DateField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_projects')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='projects_status_idx'),
            models.Index(fields=['priority'], name='projects_priority_idx'),
        ]
