import logging

from django.core.cache import cache
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.permissions import is_manager, IsSupervisorOrAdmin
from assisthub.core.utils import create_audit_log
from . import services
from .exceptions import TagError
from .models import Tag, TagCategory
from .serializers import TagSerializer, TagWriteSerializer, TagAssociationSerializer
from .utils import tag_error_response

logger = logging.getLogger(__name__)

PERMISSION_DENIED = {'error': 'Permission denied'}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tag_list_create(request):
    """List tags (optionally by category) or create a new tag"""
    if request.method == 'GET':
        category = request.query_params.get('category', None)
        if category and category not in TagCategory.values:
            return Response({'error': f'Invalid category. Must be one of: {", ".join(TagCategory.values)}'},
                            status=status.HTTP_400_BAD_REQUEST)

        cache_key = services.get_tag_list_cache_key(category)
        cached_data = cache.get(cache_key)
        if cached_data is not None:
            return Response(cached_data)

        serializer = TagSerializer(services.get_tags(category), many=True)
        response_data = serializer.data
        cache.set(cache_key, response_data, services.TAG_LIST_CACHE_TTL)
        return Response(response_data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    serializer = TagWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        tag = services.create_tag(user=request.user, **serializer.validated_data)
    except TagError as e:
        return tag_error_response(e)

    create_audit_log(
        request=request,
        action='create',
        model_name='Tag',
        object_id=tag.pk,
        object_name=tag.name,
        changes={'name': tag.name, 'category': tag.category},
    )
    return Response(TagSerializer(tag).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def tag_detail(request, pk):
    """Retrieve, update or delete a tag"""
    tag = get_object_or_404(Tag, pk=pk)

    if request.method == 'GET':
        return Response(TagSerializer(tag).data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = TagWriteSerializer(data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        old = {'name': tag.name, 'category': tag.category}
        try:
            tag = services.update_tag(tag.pk, **serializer.validated_data)
        except TagError as e:
            return tag_error_response(e)
        create_audit_log(
            request=request,
            action='update',
            model_name='Tag',
            object_id=tag.pk,
            object_name=tag.name,
            changes={'old': old, 'new': {'name': tag.name, 'category': tag.category}},
        )
        return Response(TagSerializer(tag).data)

    # DELETE
    try:
        deleted = services.delete_tag(pk)
    except TagError as e:
        return tag_error_response(e)
    if deleted is not None:
        create_audit_log(
            request=request,
            action='delete',
            model_name='Tag',
            object_id=pk,
            object_name=deleted.name,
            changes={'category': deleted.category},
        )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tag_entities(request, pk):
    """Entities currently carrying the tag"""
    tag = services.get_tag_by_id(pk)
    if tag is None:
        return Response([])
    return Response(services.get_entities_by_tag(tag.name, tag.category))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSupervisorOrAdmin])
def tag_associations(request, pk):
    """Add the tag to / remove it from a set of entities in one batch"""
    tag = get_object_or_404(Tag, pk=pk)
    serializer = TagAssociationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    to_add = serializer.validated_data['entity_ids_to_add']
    to_remove = serializer.validated_data['entity_ids_to_remove']
    try:
        result = services.update_tag_associations(tag.pk, tag.name, tag.category, to_add, to_remove)
    except TagError as e:
        return tag_error_response(e)

    if result['added'] or result['removed']:
        create_audit_log(
            request=request,
            action='tag_associations',
            model_name='Tag',
            object_id=tag.pk,
            object_name=tag.name,
            changes={'added': result['added'], 'removed': result['removed']},
        )
    return Response({
        'tag': TagSerializer(result['tag']).data,
        'added': result['added'],
        'removed': result['removed'],
        'entities': services.get_entities_by_tag(tag.name, tag.category),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsSupervisorOrAdmin])
def tag_consistency(request):
    """Report (GET) or repair (POST) tags whose usage count drifted from membership"""
    category = request.query_params.get('category', None) or request.data.get('category', None)
    try:
        if request.method == 'GET':
            drift = services.find_usage_drift(category)
        else:
            drift = services.recount_tag_usage(category)
            logger.info(f"Tag usage recount by {request.user.username}: {len(drift)} tags repaired")
    except TagError as e:
        return tag_error_response(e)

    return Response({
        'consistent': not drift,
        'repaired': request.method == 'POST',
        'tags': [
            {'id': tag.pk, 'name': tag.name, 'category': tag.category, 'stored': stored, 'actual': actual}
            for tag, stored, actual in drift
        ],
    })
