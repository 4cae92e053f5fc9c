from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.permissions import is_manager
from assisthub.tags.exceptions import TagError
from assisthub.tags.models import TagCategory
from assisthub.tags.services import set_entity_tags
from assisthub.tags.utils import tag_error_response
from .models import Team
from .serializers import TeamSerializer

PERMISSION_DENIED = {'error': 'Only supervisors and administrators can manage teams.'}


def _save_team(serializer, request, **extra):
    """Save the team and apply the requested tags in one transaction"""
    tag_names = request.data.get('tags', None)
    with transaction.atomic():
        team = serializer.save(updated_by=request.user, **extra)
        if tag_names is not None:
            set_entity_tags(TagCategory.TEAM, team.pk, tag_names)
    team.refresh_from_db()
    return team


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def team_list_create(request):
    """List all teams or create a new team"""
    if request.method == 'GET':
        queryset = Team.objects.all().prefetch_related('members').order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(notes__icontains=search))
        member = request.query_params.get('member', None)
        if member:
            queryset = queryset.filter(members__id=member)
        serializer = TeamSerializer(queryset, many=True)
        return Response(serializer.data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)
    serializer = TeamSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        team = _save_team(serializer, request, created_by=request.user)
    except TagError as e:
        return tag_error_response(e)
    return Response(TeamSerializer(team).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def team_detail(request, pk):
    """Retrieve, update or delete a team"""
    team = get_object_or_404(Team, pk=pk)

    if request.method == 'GET':
        serializer = TeamSerializer(team)
        return Response(serializer.data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = TeamSerializer(team, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            team = _save_team(serializer, request)
        except TagError as e:
            return tag_error_response(e)
        return Response(TeamSerializer(team).data)

    # DELETE
    try:
        team.delete()
    except TagError as e:
        return tag_error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)
