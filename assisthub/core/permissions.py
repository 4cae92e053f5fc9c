"""Role checks shared by every app"""
from rest_framework.permissions import BasePermission

from .models import Role

MANAGER_ROLES = (Role.SUPERVISOR, Role.AMMINISTRATORE)


def get_user_role(user):
    if not user or not user.is_authenticated:
        return None
    return user.effective_role


def has_role(user, *roles):
    return get_user_role(user) in roles


def is_manager(user):
    """SUPERVISOR or AMMINISTRATORE"""
    return has_role(user, *MANAGER_ROLES)


def is_admin_user(user):
    return has_role(user, Role.AMMINISTRATORE)


class IsSupervisorOrAdmin(BasePermission):
    message = 'Only supervisors and administrators can perform this action.'

    def has_permission(self, request, view):
        return is_manager(request.user)


class IsAmministratore(BasePermission):
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)
