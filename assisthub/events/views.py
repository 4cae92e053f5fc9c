from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.models import User
from assisthub.core.permissions import is_manager
from .models import CalendarEvent
from .serializers import CalendarEventSerializer
from .services import get_calendar_events, parse_range_bound


def _can_edit(user, event):
    return event.user_id == user.pk or is_manager(user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def event_list_create(request):
    """
    List the requester's events, optionally within ?start=&end=.
    Supervisors and administrators may pass ?user=<id> to see someone else's calendar.
    """
    if request.method == 'GET':
        owner = request.user
        user_id = request.query_params.get('user', None)
        if user_id and str(user_id) != str(request.user.pk):
            if not is_manager(request.user):
                return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
            owner = get_object_or_404(User, pk=user_id)
        try:
            start = parse_range_bound(request.query_params.get('start', None))
            end = parse_range_bound(request.query_params.get('end', None), end_of_day=True)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        serializer = CalendarEventSerializer(get_calendar_events(owner, start, end), many=True)
        return Response(serializer.data)

    serializer = CalendarEventSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(user=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def event_detail(request, pk):
    """Retrieve, update or delete an event. The owner never changes."""
    event = get_object_or_404(CalendarEvent.objects.select_related('project', 'team'), pk=pk)

    if not _can_edit(request.user, event):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(CalendarEventSerializer(event).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = CalendarEventSerializer(event, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    event.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
