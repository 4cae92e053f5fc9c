from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.permissions import IsAmministratore
from assisthub.core.utils import create_audit_log
from assisthub.tags.exceptions import EntityNotFound
from assisthub.tags.utils import tag_error_response
from . import services
from .models import LinkedType
from .serializers import FileAttachmentSerializer, FileUploadSerializer, FileLinkSerializer


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAmministratore])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def file_list_upload(request):
    """List every physical file with its links, or upload a file for one entity"""
    if request.method == 'GET':
        return Response(services.get_all_files())

    serializer = FileUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        attachment = services.upload_file(data['file'], data['linked_type'], data['linked_id'], user=request.user)
    except EntityNotFound as e:
        return tag_error_response(e)
    create_audit_log(
        request=request,
        action='file_upload',
        model_name='FileAttachment',
        object_id=attachment.pk,
        object_name=attachment.name,
        changes={'linked_type': attachment.linked_type, 'linked_id': attachment.linked_id, 'size': attachment.size},
    )
    return Response(FileAttachmentSerializer(attachment, context={'request': request}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAmministratore])
def file_delete(request, pk):
    """Delete the physical file behind row ``pk`` along with all of its links"""
    try:
        removed = services.delete_file(file_id=pk)
    except EntityNotFound as e:
        return tag_error_response(e)
    create_audit_log(
        request=request,
        action='file_delete',
        model_name='FileAttachment',
        object_id=pk,
        changes={'links_removed': removed},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAmministratore])
def file_delete_by_path(request):
    storage_path = request.data.get('storage_path', None)
    if not storage_path:
        return Response({'error': 'storage_path is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        removed = services.delete_file(storage_path=storage_path)
    except EntityNotFound as e:
        return tag_error_response(e)
    create_audit_log(
        request=request,
        action='file_delete',
        model_name='FileAttachment',
        object_id=storage_path,
        changes={'links_removed': removed},
    )
    return Response({'links_removed': removed})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAmministratore])
def file_link(request, pk):
    """Link an already uploaded file to another entity"""
    serializer = FileLinkSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        attachment = services.link_file(pk, user=request.user, **serializer.validated_data)
    except EntityNotFound as e:
        return tag_error_response(e)
    return Response(FileAttachmentSerializer(attachment, context={'request': request}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAmministratore])
def entity_files(request, linked_type, linked_id):
    """Files linked to one entity"""
    if linked_type not in LinkedType.values:
        return Response({'error': f'Invalid type. Must be one of: {", ".join(LinkedType.values)}'},
                        status=status.HTTP_400_BAD_REQUEST)
    queryset = services.get_entity_files(linked_type, linked_id)
    serializer = FileAttachmentSerializer(queryset, many=True, context={'request': request})
    return Response(serializer.data)
