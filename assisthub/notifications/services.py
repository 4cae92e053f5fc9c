import logging

from django.db.models import Q

from assisthub.core.models import Role, User
from .models import Notification

logger = logging.getLogger(__name__)


def visible_notifications(user):
    """Broadcast notifications plus those addressed to ``user``"""
    return Notification.objects.filter(Q(target_user__isnull=True) | Q(target_user=user))


def get_notifications(user, read=None):
    queryset = visible_notifications(user)
    if read is not None:
        queryset = queryset.filter(read=read)
    return queryset.order_by('-created_at', '-id')


def create_notification(title, message, link='', target_user=None, read=False):
    notification = Notification.objects.create(
        title=title,
        message=message,
        link=link or '',
        target_user=target_user,
        read=read,
    )
    logger.debug(f"Created notification {notification.pk}: {title}")
    return notification


def notify_role(role, title, message, link=''):
    """One notification per active user holding ``role``"""
    users = User.objects.filter(is_active=True)
    if role == Role.AMMINISTRATORE:
        users = users.filter(Q(role=role) | Q(is_superuser=True))
    else:
        users = users.filter(role=role)
    return [create_notification(title, message, link=link, target_user=user) for user in users]


def mark_notification_as_read(notification):
    if not notification.read:
        notification.read = True
        notification.save(update_fields=['read'])
    return notification


def mark_all_notifications_as_read(user):
    """
    Mark every unread notification addressed to ``user`` as read. Returns the count.
    Broadcasts share one read flag across users, so they are only marked one at a time.
    """
    updated = Notification.objects.filter(target_user=user, read=False).update(read=True)
    logger.info(f"Marked {updated} notifications as read for user {user.pk}")
    return updated
