from rest_framework import serializers
from assisthub.core.models import User
from assisthub.clients.models import Client
from .models import Project


class ProjectClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ['id', 'company_name']


class ProjectMemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'role']


class ProjectSerializer(serializers.ModelSerializer):
    clients = ProjectClientSerializer(many=True, read_only=True)
    team_members = ProjectMemberSerializer(many=True, read_only=True)
    client_ids = serializers.PrimaryKeyRelatedField(
        source='clients', queryset=Client.objects.all(), many=True, write_only=True
    )
    team_member_ids = serializers.PrimaryKeyRelatedField(
        source='team_members', queryset=User.objects.all(), many=True, write_only=True, required=False
    )
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'name', 'description', 'clients', 'client_ids', 'team_members', 'team_member_ids',
            'status', 'priority', 'due_date', 'tags',
            'created_by', 'created_by_username', 'updated_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['tags', 'created_by', 'updated_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("Project name must be at least 3 characters.")
        return value

    def validate_client_ids(self, value):
        if not value:
            raise serializers.ValidationError("A project needs at least one client.")
        return value
