from django.db import models
from assisthub.core.models import User
from assisthub.projects.models import Project
from assisthub.teams.models import Team


class EventType(models.TextChoices):
    PERSONAL = 'personal', 'Personale'
    TEAM = 'team', 'Team'
    PROJECT = 'project', 'Progetto'


class CalendarEvent(models.Model):
    title = models.CharField(max_length=100)
    start = models.DateTimeField()
    end = models.DateTimeField()
    all_day = models.BooleanField(default=False)
    description = models.TextField(blank=True, max_length=1000)
    type = models.CharField(max_length=10, choices=EventType.choices, default=EventType.PERSONAL)
    project = models.ForeignKey(Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='events')
    team = models.ForeignKey(Team, on_delete=models.SET_NULL, null=True, blank=True, related_name='events')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='calendar_events')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.start:%Y-%m-%d %H:%M})"

    class Meta:
        db_table = 'calendar_events'
        ordering = ['start']
        indexes = [
            models.Index(fields=['user', 'start'], name='events_user_start_idx'),
        ]
