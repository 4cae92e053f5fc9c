from rest_framework import serializers
from .models import CalendarEvent, EventType


class CalendarEventSerializer(serializers.ModelSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    team_name = serializers.CharField(source='team.name', read_only=True)

    class Meta:
        model = CalendarEvent
        fields = [
            'id', 'title', 'start', 'end', 'all_day', 'description', 'type',
            'project', 'project_name', 'team', 'team_name', 'user', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'created_at', 'updated_at']

    def validate_title(self, value):
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("Title must be at least 3 characters.")
        return value

    def validate(self, data):
        start = data.get('start', getattr(self.instance, 'start', None))
        end = data.get('end', getattr(self.instance, 'end', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end': "End must not be before start."})

        event_type = data.get('type', getattr(self.instance, 'type', EventType.PERSONAL))
        project = data.get('project', getattr(self.instance, 'project', None))
        team = data.get('team', getattr(self.instance, 'team', None))
        if event_type == EventType.PROJECT and project is None:
            raise serializers.ValidationError({'project': "Project events need a project."})
        if event_type == EventType.TEAM and team is None:
            raise serializers.ValidationError({'team': "Team events need a team."})
        return data
