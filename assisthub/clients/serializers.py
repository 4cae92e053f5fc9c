import re

from rest_framework import serializers
from .models import Client

PHONE_PATTERN = re.compile(r'^\+?[0-9 ()./-]{6,20}$')


class ClientSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True)

    class Meta:
        model = Client
        fields = [
            'id', 'company_name', 'contact_person', 'address', 'geolocation_link',
            'phone_fixed', 'phone_mobile', 'notes', 'tags',
            'awaiting_admin_approval', 'approved_by', 'approved_by_username', 'approved_at',
            'created_by', 'created_by_username', 'updated_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'tags', 'awaiting_admin_approval', 'approved_by', 'approved_at',
            'created_by', 'updated_by', 'created_at', 'updated_at'
        ]

    def validate_company_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Company name must be at least 2 characters.")
        return value

    def _validate_phone(self, value):
        value = (value or '').strip()
        if value and not PHONE_PATTERN.match(value):
            raise serializers.ValidationError("Enter a valid phone number.")
        return value

    def validate_phone_fixed(self, value):
        return self._validate_phone(value)

    def validate_phone_mobile(self, value):
        return self._validate_phone(value)


class GeolocateSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    update_link = serializers.BooleanField(default=False)
