from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.permissions import is_manager
from .serializers import NotificationSerializer
from . import services


def _parse_read_filter(value):
    if value is None or value == '':
        return None
    return value.lower() in ('1', 'true', 'yes')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notification_list_create(request):
    """List the notifications visible to the user or create a new one"""
    if request.method == 'GET':
        read = _parse_read_filter(request.query_params.get('read', None))
        queryset = services.get_notifications(request.user, read=read)
        serializer = NotificationSerializer(queryset, many=True)
        return Response(serializer.data)

    if not is_manager(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = NotificationSerializer(data=request.data)
    if serializer.is_valid():
        notification = services.create_notification(**serializer.validated_data)
        return Response(NotificationSerializer(notification).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, pk):
    """Retrieve or delete a notification"""
    notification = get_object_or_404(services.visible_notifications(request.user), pk=pk)

    if request.method == 'GET':
        return Response(NotificationSerializer(notification).data)

    if notification.target_user_id is None and not is_manager(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    """Mark one notification as read"""
    notification = get_object_or_404(services.visible_notifications(request.user), pk=pk)
    services.mark_notification_as_read(notification)
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    """Mark every unread notification addressed to the user as read"""
    updated = services.mark_all_notifications_as_read(request.user)
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = services.get_notifications(request.user, read=False).count()
    return Response({'unread': count})
