import logging

from django.db.models import Count
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.clients.models import Client
from assisthub.events.serializers import CalendarEventSerializer
from assisthub.events.services import get_upcoming_events
from assisthub.notifications.services import get_notifications
from assisthub.projects.models import Project, ProjectStatus

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_summary(request):
    """Project counts by status, pending clients, unread notifications and upcoming events"""
    try:
        limit = int(request.query_params.get('events', 5))
    except ValueError:
        limit = 5
    limit = max(1, min(limit, 50))

    counts = dict(Project.objects.values_list('status').annotate(total=Count('id')).order_by())
    projects_by_status = {choice: counts.get(choice, 0) for choice in ProjectStatus.values}

    summary = {
        'projects_total': sum(projects_by_status.values()),
        'projects_by_status': projects_by_status,
        'clients_total': Client.objects.count(),
        'clients_awaiting_approval': Client.objects.filter(awaiting_admin_approval=True).count(),
        'unread_notifications': get_notifications(request.user, read=False).count(),
        'upcoming_events': CalendarEventSerializer(get_upcoming_events(request.user, limit), many=True).data,
    }
    logger.debug(f"Dashboard summary for {request.user.username}: {summary['projects_total']} projects")
    return Response(summary)
