from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.permissions import is_manager
from assisthub.core.utils import create_audit_log
from assisthub.tags.exceptions import TagError
from assisthub.tags.models import TagCategory
from assisthub.tags.services import set_entity_tags
from assisthub.tags.utils import tag_error_response
from .filters import ProjectFilter
from .models import Project
from .serializers import ProjectSerializer

PERMISSION_DENIED = {'error': 'Only supervisors and administrators can modify projects.'}


def _save_project(serializer, request, **extra):
    tag_names = request.data.get('tags', None)
    with transaction.atomic():
        project = serializer.save(updated_by=request.user, **extra)
        if tag_names is not None:
            set_entity_tags(TagCategory.PROJECT, project.pk, tag_names)
    project.refresh_from_db()
    return project


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List projects (filterable by status, priority, client, member, search) or create one"""
    if request.method == 'GET':
        queryset = Project.objects.all().prefetch_related('clients', 'team_members').select_related('created_by')
        filterset = ProjectFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProjectSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = ProjectSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        project = _save_project(serializer, request, created_by=request.user)
    except TagError as e:
        return tag_error_response(e)
    create_audit_log(
        request=request,
        action='create',
        model_name='Project',
        object_id=project.pk,
        object_name=project.name,
        changes={'status': project.status, 'priority': project.priority},
    )
    return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve, update or delete a project"""
    project = get_object_or_404(Project, pk=pk)

    if request.method == 'GET':
        return Response(ProjectSerializer(project).data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        old_status = project.status
        serializer = ProjectSerializer(project, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            project = _save_project(serializer, request)
        except TagError as e:
            return tag_error_response(e)
        changes = {}
        if old_status != project.status:
            changes['status'] = {'old': old_status, 'new': project.status}
        create_audit_log(
            request=request,
            action='update',
            model_name='Project',
            object_id=project.pk,
            object_name=project.name,
            changes=changes,
        )
        return Response(ProjectSerializer(project).data)

    # DELETE
    name = project.name
    try:
        project.delete()
    except TagError as e:
        return tag_error_response(e)
    create_audit_log(request=request, action='delete', model_name='Project', object_id=pk, object_name=name)
    return Response(status=status.HTTP_204_NO_CONTENT)
