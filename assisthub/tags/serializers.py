from rest_framework import serializers
from .models import Tag, TagCategory


class TagSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = Tag
        fields = ['id', 'name', 'category', 'usage_count', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = fields


class TagWriteSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=50)
    category = serializers.ChoiceField(choices=TagCategory.choices)


class TagAssociationSerializer(serializers.Serializer):
    entity_ids_to_add = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    entity_ids_to_remove = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)

    def validate(self, attrs):
        overlap = set(attrs['entity_ids_to_add']) & set(attrs['entity_ids_to_remove'])
        if overlap:
            raise serializers.ValidationError({
                'entity_ids_to_remove': f'IDs cannot be both added and removed: {sorted(overlap)}'
            })
        return attrs
