from rest_framework import serializers
from .models import FileAttachment, LinkedType


class FileAttachmentSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()
    uploaded_by_username = serializers.CharField(source='uploaded_by.username', read_only=True)

    class Meta:
        model = FileAttachment
        fields = [
            'id', 'name', 'url', 'storage_path', 'content_type', 'size',
            'uploaded_by', 'uploaded_by_username', 'uploaded_at', 'linked_type', 'linked_id'
        ]
        read_only_fields = fields

    def get_url(self, obj):
        if not obj.file:
            return ''
        request = self.context.get('request')
        url = obj.file.url
        return request.build_absolute_uri(url) if request else url


class FileUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    linked_type = serializers.ChoiceField(choices=LinkedType.choices)
    linked_id = serializers.IntegerField(min_value=1)


class FileLinkSerializer(serializers.Serializer):
    linked_type = serializers.ChoiceField(choices=LinkedType.choices)
    linked_id = serializers.IntegerField(min_value=1)
