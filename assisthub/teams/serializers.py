from rest_framework import serializers
from assisthub.core.models import User
from .models import Team


class TeamMemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'role']


class TeamSerializer(serializers.ModelSerializer):
    members = TeamMemberSerializer(many=True, read_only=True)
    member_ids = serializers.PrimaryKeyRelatedField(
        source='members', queryset=User.objects.all(), many=True, write_only=True, required=False
    )
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = Team
        fields = [
            'id', 'name', 'members', 'member_ids', 'notes', 'tags',
            'created_by', 'created_by_username', 'updated_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['tags', 'created_by', 'updated_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("Team name must be at least 3 characters.")
        return value
