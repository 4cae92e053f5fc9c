import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assisthub.core.models import Role
from assisthub.core.permissions import has_role, is_manager, IsAmministratore
from assisthub.core.utils import create_audit_log
from assisthub.notifications.services import notify_role
from assisthub.tags.exceptions import TagError
from assisthub.tags.models import TagCategory
from assisthub.tags.services import set_entity_tags
from assisthub.tags.utils import tag_error_response
from .filters import ClientFilter
from .geolocation import get_geolocation, build_map_link, GeolocationError
from .models import Client
from .serializers import ClientSerializer, GeolocateSerializer

logger = logging.getLogger(__name__)

PERMISSION_DENIED = {'error': 'Only supervisors and administrators can modify clients.'}


def _save_client(serializer, request, **extra):
    """Save the client and apply the requested tags in one transaction"""
    tag_names = request.data.get('tags', None)
    with transaction.atomic():
        client = serializer.save(updated_by=request.user, **extra)
        if tag_names is not None:
            set_entity_tags(TagCategory.CLIENT, client.pk, tag_names)
    client.refresh_from_db()
    return client


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_list_create(request):
    """List clients or create a new client"""
    if request.method == 'GET':
        queryset = Client.objects.all().select_related('created_by', 'approved_by')
        filterset = ClientFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ClientSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = ClientSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    awaiting = has_role(request.user, Role.TECNICO)
    try:
        client = _save_client(serializer, request, created_by=request.user, awaiting_admin_approval=awaiting)
    except TagError as e:
        return tag_error_response(e)

    if awaiting:
        notify_role(
            Role.AMMINISTRATORE,
            'Nuovo cliente da approvare',
            f'{request.user.display_name} ha creato il cliente {client.company_name}.',
            link=f'/clients/{client.pk}',
        )
    create_audit_log(
        request=request,
        action='create',
        model_name='Client',
        object_id=client.pk,
        object_name=client.company_name,
        changes={'awaiting_admin_approval': awaiting},
    )
    return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_object_or_404(Client, pk=pk)

    if request.method == 'GET':
        return Response(ClientSerializer(client).data)

    if not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            client = _save_client(serializer, request)
        except TagError as e:
            return tag_error_response(e)
        create_audit_log(
            request=request,
            action='update',
            model_name='Client',
            object_id=client.pk,
            object_name=client.company_name,
            changes={key: value for key, value in request.data.items() if key != 'tags'},
        )
        return Response(ClientSerializer(client).data)

    # DELETE
    company_name = client.company_name
    try:
        client.delete()
    except TagError as e:
        return tag_error_response(e)
    create_audit_log(
        request=request,
        action='delete',
        model_name='Client',
        object_id=pk,
        object_name=company_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAmministratore])
def client_approve(request, pk):
    """Approve a client created by a technician"""
    client = get_object_or_404(Client, pk=pk)
    if not client.awaiting_admin_approval:
        return Response({'error': 'Client is not awaiting approval.'}, status=status.HTTP_400_BAD_REQUEST)

    client.awaiting_admin_approval = False
    client.approved_by = request.user
    client.approved_at = timezone.now()
    client.updated_by = request.user
    client.save(update_fields=['awaiting_admin_approval', 'approved_by', 'approved_at', 'updated_by', 'updated_at'])

    create_audit_log(
        request=request,
        action='client_approve',
        model_name='Client',
        object_id=client.pk,
        object_name=client.company_name,
    )
    logger.info(f"Client {client.pk} approved by {request.user.username}")
    return Response(ClientSerializer(client).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def client_geolocate(request, pk):
    """
    Resolve the client's address (or the one given in the body) to coordinates.
    With update_link=true a manager also stores the resulting map link on the client.
    """
    client = get_object_or_404(Client, pk=pk)
    serializer = GeolocateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    update_link = serializer.validated_data['update_link']
    if update_link and not is_manager(request.user):
        return Response(PERMISSION_DENIED, status=status.HTTP_403_FORBIDDEN)

    address = serializer.validated_data.get('address') or client.address
    try:
        location = get_geolocation(address)
    except GeolocationError as e:
        return Response({'error': 'GeolocationError', 'message': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    link = build_map_link(location)
    if update_link:
        client.geolocation_link = link
        client.updated_by = request.user
        client.save(update_fields=['geolocation_link', 'updated_by', 'updated_at'])

    return Response({'lat': location.lat, 'lng': location.lng, 'link': link})
