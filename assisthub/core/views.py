from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from assisthub.tags.exceptions import TagError
from assisthub.tags.models import TagCategory
from assisthub.tags.services import set_entity_tags
from assisthub.tags.utils import tag_error_response
from .models import User, AuditLog, Role
from .navigation import get_navigation
from .permissions import is_manager, is_admin_user, IsSupervisorOrAdmin
from .serializers import (
    UserSerializer, UserCreateSerializer, ProfileSerializer,
    PasswordChangeSerializer, AuditLogSerializer
)
from .utils import create_audit_log


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.effective_role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


def _can_assign_role(actor, role):
    """Only administrators can hand out the administrator role"""
    return role != Role.AMMINISTRATORE or is_admin_user(actor)


def _apply_user_tags(request, user):
    tag_names = request.data.get('tags', None)
    if tag_names is not None:
        set_entity_tags(TagCategory.USER, user.pk, tag_names)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role and navigation; PATCH updates the user's own profile"""
    user = request.user
    if request.method == 'PATCH':
        serializer = ProfileSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save(updated_by=user)
        user.refresh_from_db()

    user_data = UserSerializer(user).data
    user_data['role'] = user.effective_role
    user_data['is_manager'] = is_manager(user)
    user_data['navigation'] = get_navigation(user.effective_role)
    return Response(user_data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request.user.set_password(serializer.validated_data['new_password'])
    request.user.save(update_fields=['password'])
    return Response({'detail': 'Password updated.'})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsSupervisorOrAdmin])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        queryset = User.objects.all().prefetch_related('teams')
        role = request.query_params.get('role', None)
        if role:
            queryset = queryset.filter(role=role)
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(email__icontains=search)
            )
        serializer = UserSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if not _can_assign_role(request.user, serializer.validated_data.get('role', Role.TECNICO)):
        return Response({'error': 'Only administrators can create administrators.'},
                        status=status.HTTP_403_FORBIDDEN)
    try:
        with transaction.atomic():
            user = serializer.save(created_by=request.user, updated_by=request.user)
            _apply_user_tags(request, user)
    except TagError as e:
        return tag_error_response(e)
    user.refresh_from_db()
    create_audit_log(request=request, action='create', model_name='User', object_id=user.pk,
                     object_name=user.username, changes={'role': user.role})
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsSupervisorOrAdmin])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if user.effective_role == Role.AMMINISTRATORE and not is_admin_user(request.user):
        return Response({'error': 'Only administrators can modify administrators.'},
                        status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        new_role = serializer.validated_data.get('role', user.role)
        if new_role != user.role and not _can_assign_role(request.user, new_role):
            return Response({'error': 'Only administrators can grant the administrator role.'},
                            status=status.HTTP_403_FORBIDDEN)
        old_role = user.role
        try:
            with transaction.atomic():
                user = serializer.save(updated_by=request.user)
                _apply_user_tags(request, user)
        except TagError as e:
            return tag_error_response(e)
        user.refresh_from_db()
        if old_role != user.role:
            create_audit_log(request=request, action='update', model_name='User', object_id=user.pk,
                             object_name=user.username, changes={'role': {'old': old_role, 'new': user.role}})
        return Response(UserSerializer(user).data)

    # DELETE
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot delete your own account.'}, status=status.HTTP_400_BAD_REQUEST)
    username = user.username
    try:
        user.delete()
    except TagError as e:
        return tag_error_response(e)
    create_audit_log(request=request, action='delete', model_name='User', object_id=pk, object_name=username)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs; non-administrators only see their own entries"""
    queryset = AuditLog.objects.select_related('user')
    if not is_admin_user(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)
    model_filter = request.query_params.get('model_name', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)
    object_filter = request.query_params.get('object_id', None)
    if object_filter:
        queryset = queryset.filter(object_id=object_filter)

    try:
        limit = int(request.query_params.get('limit', 200))
    except ValueError:
        limit = 200
    serializer = AuditLogSerializer(queryset[:max(1, min(limit, 1000))], many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    queryset = AuditLog.objects.select_related('user')
    if not is_admin_user(request.user):
        queryset = queryset.filter(user=request.user)
    log = get_object_or_404(queryset, pk=pk)
    return Response(AuditLogSerializer(log).data)
